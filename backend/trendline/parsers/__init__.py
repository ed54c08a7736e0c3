from trendline.parsers.base import DocumentFormat, ParseResult
from trendline.parsers.registry import ParserRegistry, classify_document

__all__ = ["DocumentFormat", "ParseResult", "ParserRegistry", "classify_document"]
