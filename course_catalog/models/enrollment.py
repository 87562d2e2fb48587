from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class Enrollment:
    """A student's registration in a course; unique per (user_id, course_id)."""
    user_id: str
    course_id: str
    progress: float = 0

    def to_row(self):
        return asdict(self)
