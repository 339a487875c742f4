from linguagen.parsing.json_parser import parse_structured, strip_trailing_commas
from linguagen.parsing.normalizer import normalize_response
from linguagen.parsing.recovery import recover_items

__all__ = [
    "normalize_response",
    "parse_structured",
    "recover_items",
    "strip_trailing_commas",
]
