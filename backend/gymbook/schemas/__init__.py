from .admin import AdminStatsResponse, SecurityEventResponse
from .booking import (
    AdminBookingResponse,
    BookingCreateRequest,
    BookingCreateResponse,
    BookingResponse,
    CancellationResponse,
)
from .content import (
    BlogPostCreate,
    BlogPostResponse,
    BlogPostUpdate,
    ContactRequest,
    ContactResponse,
    SiteContentResponse,
    SiteContentUpdate,
)
from .gym_class import (
    ClassCreate,
    ClassResponse,
    ClassTemplateCreate,
    ClassTemplateResponse,
    ClassTemplateUpdate,
    ClassUpdate,
)
from .member import (
    AdminMemberUpdate,
    DeleteAccountRequest,
    EmailRequest,
    LoginResponse,
    MemberLogin,
    MemberRegister,
    MemberResponse,
    MemberUpdate,
    MessageResponse,
    PasswordResetConfirm,
)

__all__ = [
    "AdminBookingResponse",
    "AdminMemberUpdate",
    "AdminStatsResponse",
    "BlogPostCreate",
    "BlogPostResponse",
    "BlogPostUpdate",
    "BookingCreateRequest",
    "BookingCreateResponse",
    "BookingResponse",
    "CancellationResponse",
    "ClassCreate",
    "ClassResponse",
    "ClassTemplateCreate",
    "ClassTemplateResponse",
    "ClassTemplateUpdate",
    "ClassUpdate",
    "ContactRequest",
    "ContactResponse",
    "DeleteAccountRequest",
    "EmailRequest",
    "LoginResponse",
    "MemberLogin",
    "MemberRegister",
    "MemberResponse",
    "MemberUpdate",
    "MessageResponse",
    "PasswordResetConfirm",
    "SecurityEventResponse",
    "SiteContentResponse",
    "SiteContentUpdate",
]
