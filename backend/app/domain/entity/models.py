"""Curriculum entity models: pure Python, no DB or HTTP dependencies."""
from __future__ import annotations
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class EntityKind(str, Enum):
    COURSE = "course"
    DEGREE = "degree"


@dataclass
class CoursePayload:
    name: Optional[str] = None
    description: Optional[str] = None
    credits: Optional[int] = None
    semester: Optional[int] = None
    degree_code: Optional[str] = None
    prerequisites: List[str] = field(default_factory=list)
    learning_objectives: Optional[str] = None
    course_outcomes: Optional[str] = None
    assessment_methods: Optional[str] = None
    textbooks: Optional[str] = None
    references: Optional[str] = None
    faculty_details: Optional[str] = None
    max_students: Optional[int] = None
    is_elective: bool = False


@dataclass
class DegreePayload:
    name: Optional[str] = None
    description: Optional[str] = None
    duration_years: Optional[int] = None
    courses_per_semester: Dict[str, List[str]] = field(default_factory=dict)
    elective_options: Dict[str, Any] = field(default_factory=dict)
    graduation_requirements: Dict[str, Any] = field(default_factory=dict)
    enrollment_config: Dict[str, Any] = field(default_factory=dict)
    requirements: Optional[str] = None


Payload = Union[CoursePayload, DegreePayload]

PAYLOAD_TYPES = {
    EntityKind.COURSE: CoursePayload,
    EntityKind.DEGREE: DegreePayload,
}


def payload_field_names(kind: EntityKind) -> set[str]:
    return {f.name for f in fields(PAYLOAD_TYPES[kind])}


def payload_from_dict(kind: EntityKind, data: Dict[str, Any]) -> Payload:
    """Build a payload from stored/request data, ignoring keys the kind does not define."""
    names = payload_field_names(kind)
    return PAYLOAD_TYPES[kind](**{k: v for k, v in data.items() if k in names})


def payload_to_dict(payload: Payload) -> Dict[str, Any]:
    return asdict(payload)


def patch_payload(payload: Payload, patch: Dict[str, Any]) -> Payload:
    return replace(payload, **patch)


@dataclass
class VersionedEntity:
    """One version row of a Course or Degree family (all rows sharing kind + code)."""
    id: str
    kind: EntityKind
    code: str
    version: int
    status: str  # draft | pending_approval | approved | active | archived
    department_id: str
    creator_id: str
    payload: Payload
    created_at: str
    updated_at: str
    parent_entity_id: Optional[str] = None
    is_latest_version: bool = True
    approver_id: Optional[str] = None
    updater_id: Optional[str] = None
    rejection_reason: Optional[str] = None
    submitted_at: Optional[str] = None
    approved_at: Optional[str] = None
    row_version: int = 1
    # Derived on read, never stored
    has_new_pending_version: bool = False


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as far as the engine cares."""
    id: str
    role: str  # faculty | hod | admin | student
    department_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
