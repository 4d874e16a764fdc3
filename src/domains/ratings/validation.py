"""Rating input validation with bilingual (English / Romanian) field errors.

Never raises: every violation is collected so a caller can report all of
them in one round trip.
"""

import math
from typing import Any

from .config import RatingEngineConfig, default_config
from .models import FieldError, ValidationResult, VisitRatingInput


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _is_integer(value: Any) -> bool:
    return _is_number(value) and float(value).is_integer()


class RatingValidator:
    def __init__(self, config: RatingEngineConfig | None = None) -> None:
        self._config = config or default_config

    def validate(self, data: VisitRatingInput) -> ValidationResult:
        cfg = self._config.validation
        result = ValidationResult()
        lo, hi = cfg.min_component_rating, cfg.max_component_rating

        openness = data.mission_openness_rating
        if not _is_integer(openness) or not lo <= openness <= hi:
            result.errors.append(
                FieldError(
                    field="mission_openness_rating",
                    code="out_of_range",
                    message=f"Mission openness rating must be between {lo}-{hi}",
                    message_ro=(
                        "Evaluarea deschiderii pentru misiune trebuie să fie "
                        f"între {lo}-{hi}"
                    ),
                )
            )

        hospitality = data.hospitality_rating
        if not _is_integer(hospitality) or not lo <= hospitality <= hi:
            result.errors.append(
                FieldError(
                    field="hospitality_rating",
                    code="out_of_range",
                    message=f"Hospitality rating must be between {lo}-{hi}",
                    message_ro=f"Evaluarea ospitalității trebuie să fie între {lo}-{hi}",
                )
            )

        support = data.missionary_support_count
        if not _is_integer(support) or support < 0:
            result.errors.append(
                FieldError(
                    field="missionary_support_count",
                    code="negative",
                    message="Missionary support count cannot be negative",
                    message_ro="Numărul de misionari susținuți nu poate fi negativ",
                )
            )

        offerings = data.offerings_amount
        if not _is_number(offerings) or offerings < 0:
            result.errors.append(
                FieldError(
                    field="offerings_amount",
                    code="negative",
                    message="Offerings amount cannot be negative",
                    message_ro="Suma ofrandelor nu poate fi negativă",
                )
            )
        elif offerings > cfg.large_offering_threshold:
            result.warnings.append(
                FieldError(
                    field="offerings_amount",
                    code="unusually_high",
                    message="Offerings amount seems unusually high",
                    message_ro="Suma ofrandelor pare neobișnuit de mare",
                )
            )

        members = data.church_members
        members_ok = _is_number(members) and members >= 1
        if not members_ok:
            result.errors.append(
                FieldError(
                    field="church_members",
                    code="not_positive",
                    message="Church must have at least 1 member",
                    message_ro="Biserica trebuie să aibă cel puțin 1 membru",
                )
            )

        attendees = data.attendees_count
        attendees_ok = _is_number(attendees) and attendees >= 1
        if not attendees_ok:
            result.errors.append(
                FieldError(
                    field="attendees_count",
                    code="not_positive",
                    message="Must have at least 1 attendee",
                    message_ro="Trebuie să fie cel puțin 1 participant",
                )
            )

        duration = data.visit_duration_minutes
        if duration is not None and (not _is_number(duration) or duration <= 0):
            result.errors.append(
                FieldError(
                    field="visit_duration_minutes",
                    code="not_positive",
                    message="Visit duration must be positive",
                    message_ro="Durata vizitei trebuie să fie pozitivă",
                )
            )

        # Cross-field business rules only make sense on sane operands
        if members_ok and attendees_ok and attendees > members * cfg.max_attendee_ratio:
            ratio_error = FieldError(
                field="attendees_count",
                code="ratio_exceeded",
                message="Attendees count seems unusually high compared to church members",
                message_ro=(
                    "Numărul de participanți pare neobișnuit de mare "
                    "comparativ cu membrii bisericii"
                ),
            )
            if cfg.attendee_ratio_mode == "reject":
                result.errors.append(ratio_error)
            else:
                result.warnings.append(ratio_error)

        if attendees_ok and _is_integer(support) and support > attendees:
            result.errors.append(
                FieldError(
                    field="missionary_support_count",
                    code="exceeds_attendees",
                    message="Missionary support count cannot exceed attendees count",
                    message_ro=(
                        "Numărul de misionari susținuți nu poate depăși "
                        "numărul de participanți"
                    ),
                )
            )

        return result

    def validate_visit_for_rating(
        self,
        visit_id: int,
        already_rated: bool,
        actor_id: str,
        visit_missionary_id: str | None,
        is_admin: bool = False,
    ) -> ValidationResult:
        """Check that a visit can be rated by this actor.

        A visit is rated at most once, and only by the missionary who
        conducted it unless the actor is an administrator.
        """
        result = ValidationResult()

        if already_rated:
            result.errors.append(
                FieldError(
                    field="visit_id",
                    code="already_rated",
                    message=f"Visit {visit_id} has already been rated",
                    message_ro="Această vizită a fost deja evaluată",
                )
            )

        if not is_admin and actor_id != visit_missionary_id:
            result.errors.append(
                FieldError(
                    field="missionary_id",
                    code="not_visit_owner",
                    message="You can only rate visits you personally conducted",
                    message_ro="Poți evalua doar vizitele pe care le-ai efectuat personal",
                )
            )

        return result


def get_error_message(error: FieldError, prefer_romanian: bool = False) -> str:
    return error.message_ro if prefer_romanian and error.message_ro else error.message
