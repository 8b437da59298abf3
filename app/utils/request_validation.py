from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError as PydanticValidationError
from typing import Type, TypeVar

RequestModel = TypeVar("RequestModel", bound=BaseModel)


def build_request_model(model: Type[RequestModel], **fields) -> RequestModel:
    """
    Build a request model from already parsed form fields.

    Rules that only apply after normalization (a title of blanks is empty once stripped) surface here, so they are
    re-raised as RequestValidationError and answered by the same 400 handler as the form parsing itself.
    """
    try:
        return model(**fields)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors(include_url=False)) from e
