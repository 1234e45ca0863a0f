import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

WASTED_SUBJECT_ID = "wasted-time"


def new_id():
	return str(uuid.uuid4())


def _to_local_naive(value):
	if value is not None and value.tzinfo is not None:
		return value.astimezone().replace(tzinfo=None)
	return value


class SessionType(str, Enum):
	FOCUS = "focus"
	BREAK = "break"
	MANUAL = "manual"
	WASTED = "wasted"


class GoalType(str, Enum):
	DAILY = "daily"
	WEEKLY = "weekly"
	MONTHLY = "monthly"


class Record(BaseModel):
	# camelCase on the wire, snake_case in Python
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Topic(Record):
	id: str = Field(default_factory=new_id)
	name: str
	total_time: int = Field(default=0, ge=0)
	progress: int = Field(default=0, ge=0, le=100)


class Subject(Record):
	id: str = Field(default_factory=new_id)
	name: str
	color: str = "#3b82f6"
	topics: List[Topic] = Field(default_factory=list)
	total_time: int = Field(default=0, ge=0)
	goal_time: Optional[int] = Field(default=None, gt=0)

	def topic(self, topic_id):
		return next((t for t in self.topics if t.id == topic_id), None)


class StudySession(Record):
	"""One finalized block of study, break, manual or wasted time."""
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

	id: str = Field(default_factory=new_id)
	subject_id: str
	topic_id: Optional[str] = None
	start_time: datetime
	end_time: Optional[datetime] = None
	duration: int = Field(default=0, ge=0)
	notes: Optional[str] = None
	tags: List[str] = Field(default_factory=list)
	type: SessionType = SessionType.FOCUS

	@field_validator("start_time", "end_time")
	@classmethod
	def local_times(cls, value):
		return _to_local_naive(value)


class StudyGoal(Record):
	id: str = Field(default_factory=new_id)
	type: GoalType
	target: int = Field(gt=0)
	current: int = Field(default=0, ge=0)
	subject_id: Optional[str] = None


class ExportSnapshot(Record):
	subjects: List[Subject] = Field(default_factory=list)
	sessions: List[StudySession] = Field(default_factory=list)
	goals: List[StudyGoal] = Field(default_factory=list)
	export_date: datetime

	@field_validator("export_date")
	@classmethod
	def local_export_date(cls, value):
		return _to_local_naive(value)
