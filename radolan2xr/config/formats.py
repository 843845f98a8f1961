"""
Versioned descriptions of the RADOLAN composite wire format.

The header token grammar and the bit layout of a cell are read from
``radolan_formats.json`` rather than hard-coded, so a new product revision
only needs a new entry there.
"""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .utils import load_json_config

DEFAULT_FORMAT_VERSION = "radolan-2byte"


class CellEncoding(BaseModel):
    model_config = ConfigDict(frozen=True)
    value_mask: int
    nodata_flag: int
    clutter_flag: int
    negative_flag: int = 0
    secondary_flag: int = 0


class HeaderToken(BaseModel):
    model_config = ConfigDict(frozen=True)
    field: str
    pattern: str
    kind: Literal["int", "str", "exponent", "dims", "length_prefixed"]


class CompositeFormat(BaseModel):
    model_config = ConfigDict(frozen=True)
    version: str
    description: str = ""
    sentinel: int = 3
    max_header_length: int = 4096
    cell_width: int = 2
    byte_order: Literal["little", "big"] = "little"
    prefix: dict[str, tuple[int, int]]
    datetime_format: str
    products: tuple[str, ...]
    single_byte_products: tuple[str, ...] = Field(default_factory=tuple)
    encoding: CellEncoding
    tokens: dict[str, HeaderToken]

    @property
    def dtype(self) -> str:
        """numpy dtype string of one payload cell."""
        order = "<" if self.byte_order == "little" else ">"
        return f"{order}u{self.cell_width}"

    def tokens_by_length(self) -> list[tuple[str, HeaderToken]]:
        """Tokens sorted longest name first, so 'INT' wins over a shorter prefix."""
        return sorted(self.tokens.items(), key=lambda item: -len(item[0]))


@lru_cache(maxsize=8)
def get_composite_format(
    version: str = DEFAULT_FORMAT_VERSION,
    config_file: str = "radolan_formats.json",
) -> CompositeFormat:
    """Get the validated format description for ``version``."""
    config = load_json_config(config_file)
    if version not in config:
        raise ValueError(
            f"Format version '{version}' not found in {config_file}. "
            f"Available: {sorted(config)}"
        )
    return CompositeFormat(version=version, **config[version])
