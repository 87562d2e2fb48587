"""
Course Model Module
Defines the Course data model and its mapping to the Supabase `courses` table
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field, fields


class Level(str, Enum):
    BEGINNER = 'Beginner'
    INTERMEDIATE = 'Intermediate'
    ADVANCED = 'Advanced'


# Columns an admin edit may not touch
IMMUTABLE_FIELDS = ('id', 'created_at', 'students_enrolled')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO timestamp as returned by PostgREST
    @param value: str | datetime | None - Raw column value
    @returns: datetime | None - Parsed timestamp
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00'))


def _string_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


@dataclass
class Course:
    """
    Course Model
    Represents one catalog entry with the Supabase schema
    """
    id: str
    title: str
    description: str = ''
    instructor: str = ''
    duration: str = ''
    category: str = ''
    level: Level = Level.BEGINNER
    price: float = 0.0
    rating: float = 0.0
    students_enrolled: int = 0
    image: str = ''
    syllabus: List[str] = field(default_factory=list)
    prerequisites: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_published: bool = True

    def __post_init__(self):
        self.level = Level(self.level)
        if self.price < 0:
            raise ValueError(f"Course {self.id} has a negative price: {self.price}")
        if self.students_enrolled < 0:
            raise ValueError(f"Course {self.id} has a negative enrollment count: {self.students_enrolled}")
        self.rating = round(min(max(float(self.rating), 0.0), 5.0), 1)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Course':
        """
        Build a Course from a `courses` row, defaulting every optional column
        @param row: dict - Row returned by the gateway
        @returns: Course - Validated course
        @raises: ValueError if the row violates a course invariant
        """
        category = row.get('category')
        if not category and isinstance(row.get('categories'), dict):
            category = row['categories'].get('name')

        return cls(
            id=str(row['id']),
            title=row.get('title') or '',
            description=row.get('description') or '',
            instructor=row.get('instructor') or '',
            duration=row.get('duration') or '',
            category=category or '',
            level=row.get('level') or Level.BEGINNER,
            price=float(row.get('price') or 0),
            rating=float(row.get('rating') or 0),
            students_enrolled=int(row.get('students_enrolled') or 0),
            image=row.get('image') or '',
            syllabus=_string_list(row.get('syllabus')),
            prerequisites=_string_list(row.get('prerequisites')),
            tags=_string_list(row.get('tags')),
            created_at=parse_timestamp(row.get('created_at')),
            updated_at=parse_timestamp(row.get('updated_at')),
            is_published=bool(row.get('is_published', True)),
        )

    def to_row(self) -> Dict[str, Any]:
        """Serialize to a `courses` row."""
        row = {f.name: getattr(self, f.name) for f in fields(self)}
        row['level'] = self.level.value
        row['created_at'] = self.created_at.isoformat() if self.created_at else None
        row['updated_at'] = self.updated_at.isoformat() if self.updated_at else None
        return row

    def to_dict(self) -> Dict[str, Any]:
        return self.to_row()


# Columns accepted from an admin create/update payload
EDITABLE_FIELDS = tuple(
    f.name for f in fields(Course) if f.name not in IMMUTABLE_FIELDS + ('updated_at', 'rating')
)


def clean_course_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Keep only editable columns and normalize their values
    @param updates: dict - Partial course payload
    @returns: dict - Columns safe to write
    @raises: ValueError for invalid level or negative price
    """
    cleaned = {key: value for key, value in updates.items() if key in EDITABLE_FIELDS}
    if 'level' in cleaned:
        cleaned['level'] = Level(cleaned['level']).value
    if 'price' in cleaned:
        cleaned['price'] = float(cleaned['price'])
        if cleaned['price'] < 0:
            raise ValueError("price must be non-negative")
    for key in ('syllabus', 'prerequisites', 'tags'):
        if key in cleaned:
            cleaned[key] = _string_list(cleaned[key])
    return cleaned
