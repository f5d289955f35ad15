"""
Business-rule errors

Every business failure is reported with status 404 and a user-facing message;
the subclasses only distinguish the kind of failure.
"""
from fastapi import HTTPException, status
from bson import ObjectId
from bson.errors import InvalidId


class BusinessRuleError(HTTPException):
    """Base class for request-terminating business failures"""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidInputError(BusinessRuleError):
    """Malformed identifier or input"""


class NotFoundError(BusinessRuleError):
    """Referenced entity does not exist"""


class ConflictError(BusinessRuleError):
    """Action already applied (already liked, already following, ...)"""


class ForbiddenError(BusinessRuleError):
    """Actor is not allowed to act on the resource"""


def parse_object_id(value: str) -> ObjectId:
    """Convert a path parameter to an ObjectId or fail with an invalid id error"""
    if not ObjectId.is_valid(value):
        raise InvalidInputError("Invalid object id.")
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise InvalidInputError("Invalid object id.")
