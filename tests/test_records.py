import pytest

from cleanmark.errors import ConversionError, UsageError
from cleanmark.models import Attachment, Record
from cleanmark.records import DocxRecordSettings, HtmlRecordSettings, RecordProcessor, get_nested, resolve_text_html
from cleanmark.service import ConversionService

FAKE_DOCX_HTML = "<h1>Doc</h1><p>Body<br />line</p><table><tr><td>c</td></tr></table>"


@pytest.fixture
def processor(service: ConversionService) -> RecordProcessor:
    return RecordProcessor(service)


@pytest.fixture
def fake_mammoth(monkeypatch):
    def fake(payload: bytes):
        return FAKE_DOCX_HTML, ["Unrecognised paragraph style: Fancy"]

    monkeypatch.setattr("cleanmark.adapters.docx.docx_to_html", fake)


def test_get_nested() -> None:
    data = {"body": {"content": "x"}}
    assert get_nested(data, "body.content") == "x"
    assert get_nested(data, "body.missing") is None
    assert get_nested(data, "body.content.deeper") is None


def test_resolve_nested_property() -> None:
    record = Record(json={"body": {"content": "<p>Hi</p>"}})
    assert resolve_text_html(record, "body.content", index=0) == "<p>Hi</p>"


def test_resolve_falls_back_to_common_property() -> None:
    record = Record(json={"html": "<p>x</p>"})
    assert resolve_text_html(record, "missing", index=0) == "<p>x</p>"


def test_resolve_inline_html_expression() -> None:
    record = Record(json={"body": "<p>ignored</p>"})
    assert resolve_text_html(record, "<p>Direct <b>html</b></p>", index=0) == "<p>Direct <b>html</b></p>"


def test_missing_property_suggests_email_paths() -> None:
    record = Record(json={"subject": "hello"})
    with pytest.raises(UsageError) as exc:
        resolve_text_html(record, "body", index=2)
    assert exc.value.code == "MISSING_PROPERTY"
    message = str(exc.value)
    assert message.startswith("Item 2: ")
    assert "body.content" in message
    assert "Available properties: subject" in message


def test_non_string_property_rejected() -> None:
    with pytest.raises(UsageError) as exc:
        resolve_text_html(Record(json={"body": 5}), "body", index=0)
    assert exc.value.code == "INVALID_INPUT"


def test_html_record_to_json(processor: RecordProcessor) -> None:
    batch = processor.process_html([Record(json={"id": 1, "body": "<p>Hello</p>"})])
    assert batch.records[0].json == {"id": 1, "body": "<p>Hello</p>", "markdown": "Hello"}
    assert batch.summary.total == 1
    assert batch.summary.successes == 1


def test_html_record_to_file(processor: RecordProcessor) -> None:
    settings = HtmlRecordSettings(output_mode="file", output_filename="mail.md")
    batch = processor.process_html([Record(json={"body": "<p>Hello</p>"})], settings)
    attachment = batch.records[0].binary["data"]
    assert attachment.data == b"Hello"
    assert attachment.mime_type == "text/markdown"
    assert attachment.file_name == "mail.md"


def test_html_record_from_binary(processor: RecordProcessor) -> None:
    record = Record(binary={"data": Attachment(data=b"\xef\xbb\xbf<h2>T</h2>", mime_type="text/html")})
    settings = HtmlRecordSettings(source="binary", options={"maxLength": 100})
    batch = processor.process_html([record], settings)
    assert batch.records[0].json["markdown"] == "## T"


def test_missing_binary(processor: RecordProcessor) -> None:
    with pytest.raises(UsageError) as exc:
        processor.process_html([Record(json={})], HtmlRecordSettings(source="binary"))
    assert exc.value.code == "MISSING_BINARY"


def test_batch_stops_on_first_failure(processor: RecordProcessor) -> None:
    records = [Record(json={"body": "<p>ok</p>"}), Record(json={"body": ""}), Record(json={"body": "<p>ok</p>"})]
    with pytest.raises(UsageError) as exc:
        processor.process_html(records)
    assert exc.value.index == 1
    assert str(exc.value) == "Item 1: HTML content is empty"


def test_batch_continue_on_fail(processor: RecordProcessor) -> None:
    records = [Record(json={"body": "<p>ok</p>"}), Record(json={"body": ""}), Record(json={"body": "<p>ok</p>"})]
    batch = processor.process_html(records, continue_on_fail=True)
    assert batch.records[1].json == {"error": "Item 1: HTML content is empty"}
    assert batch.records[2].json["markdown"] == "ok"
    assert batch.summary.successes == 2
    assert batch.summary.failures == 1


@pytest.mark.parametrize("continue_on_fail", [True, False])
def test_parallel_batch_keeps_order(processor: RecordProcessor, continue_on_fail: bool) -> None:
    records = [Record(json={"body": f"<p>n{index}</p>"}) for index in range(8)]
    batch = processor.process_html(records, parallelism=3, continue_on_fail=continue_on_fail)
    assert [item.json["markdown"] for item in batch.records] == [f"n{index}" for index in range(8)]


def test_parallel_batch_raises_lowest_index(processor: RecordProcessor) -> None:
    records = [Record(json={"body": "<p>ok</p>"}), Record(json={}), Record(json={"body": " "})]
    with pytest.raises(UsageError) as exc:
        processor.process_html(records, parallelism=2)
    assert exc.value.index == 1


def _record_with_list_payload() -> Record:
    return Record(json=["not", "a", "mapping"], binary={"data": Attachment(data=b"<p>x</p>")})  # type: ignore[arg-type]


@pytest.mark.parametrize("parallelism", [1, 2])
def test_unexpected_worker_error_carries_index(processor: RecordProcessor, parallelism: int) -> None:
    records = [Record(binary={"data": Attachment(data=b"<p>ok</p>")}), _record_with_list_payload()]
    with pytest.raises(ConversionError) as exc:
        processor.process_html(records, HtmlRecordSettings(source="binary"), parallelism=parallelism)
    assert exc.value.code == "CONVERSION_FAILED"
    assert exc.value.index == 1
    assert str(exc.value).startswith("Item 1: ")
    assert isinstance(exc.value.__cause__, TypeError)


def test_unexpected_worker_error_recorded_when_continuing(processor: RecordProcessor) -> None:
    batch = processor.process_html(
        [_record_with_list_payload()], HtmlRecordSettings(source="binary"), continue_on_fail=True
    )
    assert batch.records[0].json["error"].startswith("Item 0: Unexpected failure")
    assert batch.summary.failures == 1


def test_docx_record_json(processor: RecordProcessor, fake_mammoth) -> None:
    record = Record(json={"name": "doc"}, binary={"data": Attachment(data=b"PK", file_name="report.docx")})
    settings = DocxRecordSettings(include_html=True)
    batch = processor.process_docx([record], settings)
    output = batch.records[0].json
    assert output["markdown"] == "# Doc\n\nBody  \nline\n\n<table><tr><td>c</td></tr></table>"
    assert output["warnings"] == ["Unrecognised paragraph style: Fancy"]
    assert output["html"] == FAKE_DOCX_HTML
    assert output["name"] == "doc"
    assert batch.summary.warnings == {"Unrecognised paragraph style: Fancy": 1}


def test_docx_record_flat_file_output(processor: RecordProcessor, fake_mammoth) -> None:
    record = Record(binary={"data": Attachment(data=b"PK")})
    settings = DocxRecordSettings(preserve_structure=False, output_mode="file")
    batch = processor.process_docx([record], settings)
    markdown = batch.records[0].binary["data"].data.decode("utf-8")
    assert "<table>" not in markdown
    assert markdown.endswith("c")
    assert "html" not in batch.records[0].json


def test_docx_record_rejects_other_types(processor: RecordProcessor) -> None:
    record = Record(binary={"data": Attachment(data=b"x", mime_type="text/plain", file_name="a.txt")})
    with pytest.raises(UsageError) as exc:
        processor.process_docx([record])
    assert exc.value.code == "UNSUPPORTED_MIME"
    assert "Expected a .docx file" in str(exc.value)


def test_docx_record_unreadable(processor: RecordProcessor) -> None:
    record = Record(binary={"data": Attachment(data=b"not a zip archive", file_name="broken.docx")})
    with pytest.raises(ConversionError) as exc:
        processor.process_docx([record])
    assert exc.value.code == "DOCX_READ_FAILED"
    assert str(exc.value).startswith("Item 0: ")
