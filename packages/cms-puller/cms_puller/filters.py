"""Translate typed filters into the data.cms.gov positional filter syntax."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple
from urllib.parse import urlencode

from pydantic import BaseModel, Field


class FilterOperator(str, Enum):
    EQ = "="
    CONTAINS = "CONTAINS"
    IN = "IN"
    GTE = ">="
    LTE = "<="


@dataclass(frozen=True)
class Filter:
    path: str
    operator: FilterOperator
    value: Any

    def is_empty(self) -> bool:
        if self.value is None or self.value == "":
            return True
        return isinstance(self.value, (list, tuple)) and len(self.value) == 0


class FetchOptions(BaseModel):
    """Sort, projection and paging options for one paginated fetch."""

    sort_by: Optional[str] = None
    sort_descending: bool = True
    page_size: int = Field(default=100, ge=1)
    offset: int = Field(default=0, ge=0)
    columns: List[str] = Field(default_factory=list)
    fetch_all_pages: bool = False
    max_total_results: int = Field(default=5000, ge=1)


def _format_value(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def filter_params(filters: Sequence[Filter]) -> List[Tuple[str, str]]:
    """
    Serialize filters into ``filter[i][...]`` query pairs.

    Empty filters are skipped and do not consume an index.
    """
    params: List[Tuple[str, str]] = []
    index = 0
    for f in filters:
        if f.is_empty():
            continue
        prefix = f"filter[{index}]"
        params.append((f"{prefix}[path]", f.path))
        params.append((f"{prefix}[operator]", FilterOperator(f.operator).value))
        if isinstance(f.value, (list, tuple)):
            for i, v in enumerate(f.value):
                params.append((f"{prefix}[value][{i}]", _format_value(v)))
        else:
            params.append((f"{prefix}[value]", _format_value(f.value)))
        index += 1
    return params


def build_filter_url(base_url: str, filters: Sequence[Filter], options: Optional[FetchOptions] = None) -> str:
    """
    Build the dataset query URL for ``filters`` and ``options``.

    The result is deterministic for identical inputs, which is what lets it
    double as the response cache key.
    """
    options = options or FetchOptions()
    params = filter_params(filters)

    if options.sort_by:
        sign = "-" if options.sort_descending else ""
        params.append(("sort", f"{sign}{options.sort_by}"))

    if options.columns:
        params.append(("column", ",".join(options.columns)))

    params.append(("size", str(options.page_size)))
    params.append(("offset", str(options.offset)))

    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode(params)}"
