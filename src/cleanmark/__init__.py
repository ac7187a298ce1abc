"""HTML and DOCX to clean Markdown conversion."""

__version__ = "0.1.0"

from .config import AppConfig, load_config
from .core import convert, convert_custom, convert_default, convert_email
from .errors import CleanmarkError, ConversionError, UsageError
from .models import ConversionOptions, DocxConversion
from .service import ConversionService

__all__ = [
    "AppConfig",
    "CleanmarkError",
    "ConversionError",
    "ConversionOptions",
    "ConversionService",
    "DocxConversion",
    "UsageError",
    "__version__",
    "convert",
    "convert_custom",
    "convert_default",
    "convert_email",
    "load_config",
]
