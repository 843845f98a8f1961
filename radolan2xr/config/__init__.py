from .formats import CellEncoding, CompositeFormat, HeaderToken, get_composite_format
from .options import PipelineOptions
from .utils import load_json_config

__all__ = [
    "CellEncoding",
    "CompositeFormat",
    "HeaderToken",
    "PipelineOptions",
    "get_composite_format",
    "load_json_config",
]
