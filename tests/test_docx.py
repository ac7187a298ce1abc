import pytest

from cleanmark.adapters import get_adapter
from cleanmark.adapters.docx import convert_docx, html_to_docx_markdown
from cleanmark.detection import DocumentType
from cleanmark.errors import ConversionError, UsageError
from cleanmark.models import ConversionOptions


class FakeMessage:
    def __init__(self, message: str) -> None:
        self.message = message


class FakeResult:
    def __init__(self, value: str, messages: list[str]) -> None:
        self.value = value
        self.messages = [FakeMessage(message) for message in messages]


def test_html_to_docx_markdown_styles() -> None:
    assert html_to_docx_markdown("<p><em>x</em> and <strong>y</strong></p>") == "_x_ and **y**"
    assert html_to_docx_markdown("<p>a<br />b</p>") == "a  \nb"


def test_html_to_docx_markdown_sanitizes() -> None:
    markdown = html_to_docx_markdown('<p onclick="x()">safe</p><script>alert(1)</script>')
    assert markdown == "safe"


def test_convert_docx_uses_mammoth(monkeypatch) -> None:
    calls = []

    def fake_convert(fileobj, **kwargs):
        calls.append(kwargs)
        return FakeResult("<h1>Title</h1><p>Text</p>", ["Unrecognised run style"])

    monkeypatch.setattr("cleanmark.adapters.docx.mammoth.convert_to_html", fake_convert)
    result = convert_docx(b"PK-payload")
    assert result.markdown == "# Title\n\nText"
    assert result.html == "<h1>Title</h1><p>Text</p>"
    assert result.warnings == ["Unrecognised run style"]
    assert "style_map" in calls[0]


def test_convert_docx_empty_payload() -> None:
    with pytest.raises(UsageError) as exc:
        convert_docx(b"", index=3)
    assert exc.value.code == "EMPTY_INPUT"
    assert str(exc.value).startswith("Item 3: ")


def test_convert_docx_render_failure(monkeypatch) -> None:
    monkeypatch.setattr("cleanmark.adapters.docx.docx_to_html", lambda payload: ("<p>x</p>", []))

    def explode(html, preserve_structure=True):
        raise RuntimeError("bad tree")

    monkeypatch.setattr("cleanmark.adapters.docx.html_to_docx_markdown", explode)
    with pytest.raises(ConversionError) as exc:
        convert_docx(b"PK")
    assert exc.value.code == "CONVERSION_FAILED"


def test_adapter_registry() -> None:
    html = get_adapter(DocumentType.HTML)
    assert html is get_adapter(DocumentType.HTML)
    response = html.convert(b"<h3>Hi</h3>", ConversionOptions())
    assert response.markdown == "### Hi"
    assert response.html == "<h3>Hi</h3>"
    assert get_adapter(DocumentType.DOCX).document_type is DocumentType.DOCX
