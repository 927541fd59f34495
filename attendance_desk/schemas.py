from pydantic import AliasChoices, BaseModel, Field


class LoginPayload(BaseModel):
    assistant_id: str | None = None
    password: str | None = None


class AssistantCreate(BaseModel):
    id: str | None = None
    name: str | None = None
    phone: str | None = None
    password: str | None = None
    role: str | None = None


class AssistantUpdate(AssistantCreate):
    pass


class StudentPayload(BaseModel):
    # Fields left out of the body stay unset so create can tell a missing age from an explicit null.
    name: str | None = None
    age: int | None = None
    grade: str | None = None
    school: str | None = None
    phone: str | None = None
    parents_phone: str | None = Field(default=None, validation_alias=AliasChoices('parents_phone', 'parentsPhone'))
    main_center: str | None = None


class AttendanceToggle(BaseModel):
    attended: bool
    lastAttendance: str | None = None
    lastAttendanceCenter: str | None = None
    attendanceWeek: int | None = None


class HomeworkUpdate(BaseModel):
    hwDone: bool
    week: int | None = None


class PaymentUpdate(BaseModel):
    paidSession: bool
    week: int | None = None


class QuizUpdate(BaseModel):
    quizDegree: str | None = None
    week: int | None = None


class MessageStateUpdate(BaseModel):
    message_state: bool
    week: int | None = None


class CheckInRequest(BaseModel):
    qr_text: str
    attendanceWeek: int | None = None
    center: str
