# booking_app/schemas/event_type.py
from typing import Any, Literal, NamedTuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
)

BookerLayout = Literal["month_view", "week_view", "column_view"]


class _Metadata(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class EmailToggles(_Metadata):
    host: StrictBool | None = None
    attendee: StrictBool | None = None


class DisableStandardEmails(_Metadata):
    confirmation: EmailToggles | None = None


class RequiresConfirmationThreshold(_Metadata):
    time: StrictInt
    unit: Literal["minutes", "hours", "days"]


class ManagedEventConfig(_Metadata):
    unlocked_fields: dict[str, Any] | None = Field(default=None, alias="unlockedFields")


class EventTypeConfig(_Metadata):
    use_host_schedules_for_team_event: StrictBool | None = Field(
        default=None, alias="useHostSchedulesForTeamEvent"
    )


class BookerLayouts(_Metadata):
    enabled_layouts: list[BookerLayout] = Field(alias="enabledLayouts")
    default_layout: BookerLayout = Field(alias="defaultLayout")


class EventTypeMetadata(_Metadata):
    """
    Shape of `event_types.metadata`.

    All keys are optional; unknown keys are dropped. Scalars are strict so
    that e.g. a string in `multipleDuration` is rejected rather than coerced.
    """

    smart_contract_address: StrictStr | None = Field(default=None, alias="smartContractAddress")
    blockchain_id: StrictInt | None = Field(default=None, alias="blockchainId")
    multiple_duration: list[StrictInt] | None = Field(default=None, alias="multipleDuration")
    giphy_thank_you_page: StrictStr | None = Field(default=None, alias="giphyThankYouPage")
    apps: dict[str, Any] | None = None
    additional_notes_required: StrictBool | None = Field(
        default=None, alias="additionalNotesRequired"
    )
    disable_success_page: StrictBool | None = Field(default=None, alias="disableSuccessPage")
    disable_standard_emails: DisableStandardEmails | None = Field(
        default=None, alias="disableStandardEmails"
    )
    managed_event_config: ManagedEventConfig | None = Field(
        default=None, alias="managedEventConfig"
    )
    requires_confirmation_threshold: RequiresConfirmationThreshold | None = Field(
        default=None, alias="requiresConfirmationThreshold"
    )
    config: EventTypeConfig | None = None
    booker_layouts: BookerLayouts | None = Field(default=None, alias="bookerLayouts")


class MetadataParseResult(NamedTuple):
    success: bool
    data: EventTypeMetadata | None = None
    error: ValidationError | None = None


def parse_event_type_metadata(raw: Any) -> MetadataParseResult:
    """
    Decode raw event type metadata without raising.

    None is valid (no metadata). Anything that is not an object, or an
    object that does not match EventTypeMetadata, is a failure.
    """
    if raw is None:
        return MetadataParseResult(success=True)
    try:
        return MetadataParseResult(
            success=True,
            data=EventTypeMetadata.model_validate(raw),
        )
    except ValidationError as exc:
        return MetadataParseResult(success=False, error=exc)


class EventTypePublic(BaseModel):
    """Event type as listed on a public booking page."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    length: int
    hidden: bool
    lock_time_zone_toggle_on_booking_page: bool
    requires_confirmation: bool
    requires_booker_email_verification: bool
    price: int
    currency: str
    recurring_event: dict[str, Any] | None = None
    metadata: EventTypeMetadata
    description_as_safe_html: str = ""
