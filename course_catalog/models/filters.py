"""
Filter criteria for narrowing the course catalog
"""
import math
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

# Slider range shown by the course list before the user moves it
DEFAULT_MIN_PRICE = 0.0
DEFAULT_MAX_PRICE = 500.0

TEXT_FIELDS = ('search', 'category', 'level', 'instructor')
PRICE_FIELDS = ('min_price', 'max_price')


@dataclass(frozen=True)
class CourseFilters:
    """Transient filter state. Empty strings and None impose no constraint."""
    search: str = ''
    category: str = ''
    level: str = ''
    instructor: str = ''
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in TEXT_FIELDS) and \
            self.min_price is None and self.max_price is None

    def to_dict(self):
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> 'CourseFilters':
        """
        Build criteria from request arguments or a JSON body
        @param values: mapping - Raw values keyed by criteria name
        @returns: CourseFilters - Parsed criteria
        @raises: ValueError if a price bound is not a finite number
        """
        kwargs = {}
        for name in TEXT_FIELDS:
            value = values.get(name)
            if value is not None:
                kwargs[name] = str(value).strip()
        for name in PRICE_FIELDS:
            value = values.get(name)
            if value is not None and value != '':
                number = float(value)
                if not math.isfinite(number):
                    raise ValueError(f"{name} must be a finite number, got {value!r}")
                kwargs[name] = number
        return cls(**kwargs)
