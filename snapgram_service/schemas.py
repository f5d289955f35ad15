"""
Pydantic schemas for request/response validation
"""
from datetime import datetime
from typing import Annotated, Any, Generic, List, Optional, TypeVar

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, EmailStr, Field, model_validator

from .application.queries import Page
from .domain.models import CommunityType, NotificationType


def _object_id_to_str(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    return value


ObjectIdStr = Annotated[str, BeforeValidator(_object_id_to_str)]

T = TypeVar("T")


# Requests

class PasswordConfirmation(BaseModel):
    """Password plus its confirmation"""
    password: str = Field(..., min_length=8)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match.")
        return self

    class Config:
        str_strip_whitespace = True


class UserRegister(PasswordConfirmation):
    """User registration request"""
    first_name: str = Field(..., min_length=3)
    last_name: str = Field(..., min_length=3)
    username: str = Field(..., min_length=3)
    email: EmailStr
    bio: Optional[str] = Field(None, min_length=3)


class UserLogin(BaseModel):
    """User login request"""
    email: EmailStr
    password: str

    class Config:
        str_strip_whitespace = True


class ChangePassword(PasswordConfirmation):
    """Change password request"""
    old_password: Optional[str] = None


class PasswordResetRequest(BaseModel):
    """Password reset request"""
    email: EmailStr


class PasswordReset(PasswordConfirmation):
    """Password reset with token from the emailed link"""


class CommentContent(BaseModel):
    """Comment or reply body"""
    content: str = Field(..., min_length=4)

    class Config:
        str_strip_whitespace = True


# Responses

class ImageOut(BaseModel):
    public_id: str
    secure_url: str

    class Config:
        from_attributes = True


class UserOut(BaseModel):
    """Public user profile, credentials and tokens are never exposed"""
    id: ObjectIdStr
    first_name: str
    last_name: str
    name: str
    username: str
    email: str
    bio: Optional[str] = None
    image: Optional[ImageOut] = None
    followers: List[ObjectIdStr] = []
    following: List[ObjectIdStr] = []
    posts: List[ObjectIdStr] = []
    saved_posts: List[ObjectIdStr] = []
    communities: List[ObjectIdStr] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ShareOut(BaseModel):
    user: ObjectIdStr
    shared_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PostOut(BaseModel):
    """Post response, shares only carry author and original_post"""
    id: ObjectIdStr
    author: ObjectIdStr
    caption: Optional[str] = None
    location: Optional[str] = None
    images: List[ImageOut] = []
    tags: List[str] = []
    likes: List[ObjectIdStr] = []
    shared_by: List[ShareOut] = []
    original_post: Optional[ObjectIdStr] = None
    community: Optional[ObjectIdStr] = None
    comments: List[ObjectIdStr] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CommentOut(BaseModel):
    id: ObjectIdStr
    content: str
    author: ObjectIdStr
    replies: List[ObjectIdStr] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CommunityOut(BaseModel):
    id: ObjectIdStr
    name: str
    username: str
    bio: Optional[str] = None
    image: Optional[ImageOut] = None
    created_by: ObjectIdStr
    community_type: CommunityType
    posts: List[ObjectIdStr] = []
    members: List[ObjectIdStr] = []
    members_requests: List[ObjectIdStr] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationOut(BaseModel):
    id: ObjectIdStr
    user_id: ObjectIdStr
    sender_id: ObjectIdStr
    type: NotificationType
    content: str
    is_read: bool = False
    post_id: Optional[ObjectIdStr] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DataResponse(BaseModel, Generic[T]):
    """Success envelope around one resource"""
    success: bool = True
    data: T


class PageResponse(BaseModel, Generic[T]):
    """Success envelope around one page of resources"""
    success: bool = True
    data: List[T]
    total: int
    page: int
    next_page: Optional[int] = None
    has_next_page: bool


class TokenResponse(BaseModel):
    """Access token response, the refresh token travels in a cookie"""
    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_in: int


class MessageResponse(BaseModel):
    """Generic message response"""
    success: bool = True
    message: str


class CountResponse(BaseModel):
    success: bool = True
    count: int


class ErrorResponse(BaseModel):
    """Error response"""
    success: bool = False
    error: str


def page_response(page: Page, model) -> PageResponse:
    """Render a Page of domain models with the given output schema"""
    return PageResponse(
        data=[model.model_validate(item) for item in page.items],
        total=page.total,
        page=page.page,
        next_page=page.next_page,
        has_next_page=page.has_next_page,
    )
