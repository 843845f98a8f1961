from .executor import DecodeOutcome, ProgressEvent, decode_members, log_progress
from .stack import GridStack, assemble_stack

__all__ = [
    "DecodeOutcome",
    "GridStack",
    "ProgressEvent",
    "assemble_stack",
    "decode_members",
    "log_progress",
]
