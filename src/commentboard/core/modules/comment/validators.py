from typing import Any

import pydantic

from commentboard.core.modules.comment.models import CommentInput
from commentboard.errors import ValidationError

# Messages shown to users per form field, matching what the web form displays
FIELD_MESSAGES: dict[str, str] = {
    "userName": "Username must contain only Latin letters and numbers.",
    "email": "Invalid email format.",
    "homePage": "Invalid URL format.",
    "text": "Text cannot be empty.",
    "parentId": "Invalid parent ID format.",
    "captchaToken": "CAPTCHA token is required.",
}

_OPTIONAL_FIELDS = ("homePage", "parentId")


def parse_comment_input(raw: dict[str, Any]) -> CommentInput:
    """Validate a raw comment submission keyed by wire (camelCase) names.

    Empty strings in optional fields are treated as absent, as HTML forms send them.

    Raises:
        ValidationError: With one FieldError per invalid field
    """
    data = {key: value for key, value in raw.items() if value is not None}
    for key in _OPTIONAL_FIELDS:
        if data.get(key) == "":
            data.pop(key)

    try:
        return CommentInput.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError.from_details(e.errors(), FIELD_MESSAGES) from None
