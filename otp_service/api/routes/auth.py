"""Authentication routes."""
from fastapi import APIRouter, Depends

from ...schemas.auth import (
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserRecord,
    VerifyOTPRequest,
)
from ...schemas.common import APIResponse
from ...core.security import get_current_user
from ...services.auth_flow import AuthFlowController
from ..deps import get_auth_controller

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=APIResponse)
async def register(
    payload: RegisterRequest,
    controller: AuthFlowController = Depends(get_auth_controller)
):
    """Send OTP for registration."""
    email = await controller.register(payload.name, payload.email)
    
    return APIResponse(
        message="OTP sent to your email for verification",
        data={
            "email": email,
            "message": "Please check your email for OTP"
        }
    )


@router.post("/verify-otp", response_model=APIResponse)
async def verify_otp(
    payload: VerifyOTPRequest,
    controller: AuthFlowController = Depends(get_auth_controller)
):
    """Verify OTP and complete registration."""
    result = await controller.verify_otp(payload.email, payload.otp)
    
    return APIResponse(
        message="Registration completed successfully",
        data=result.model_dump(mode="json")
    )


@router.post("/login", response_model=APIResponse)
async def login(
    payload: LoginRequest,
    controller: AuthFlowController = Depends(get_auth_controller)
):
    """Send OTP for login."""
    email = await controller.login(payload.email)
    
    return APIResponse(
        message="Login OTP sent to your email",
        data={
            "email": email,
            "message": "Please check your email for login OTP"
        }
    )


@router.post("/verify-login-otp", response_model=APIResponse)
async def verify_login_otp(
    payload: VerifyOTPRequest,
    controller: AuthFlowController = Depends(get_auth_controller)
):
    """Verify login OTP and complete login."""
    result = await controller.verify_login_otp(payload.email, payload.otp)
    
    return APIResponse(
        message="Login successful",
        data=result.model_dump(mode="json")
    )


@router.get("/me", response_model=APIResponse)
async def get_me(
    current_user: UserRecord = Depends(get_current_user),
    controller: AuthFlowController = Depends(get_auth_controller)
):
    """Get current logged in user."""
    user = await controller.get_me(current_user)
    
    return APIResponse(
        message="User retrieved successfully",
        data={"user": user.model_dump(mode="json")}
    )


@router.put("/profile", response_model=APIResponse)
async def update_profile(
    payload: ProfileUpdate,
    current_user: UserRecord = Depends(get_current_user),
    controller: AuthFlowController = Depends(get_auth_controller)
):
    """Update user profile."""
    user = await controller.update_profile(
        current_user.id, name=payload.name, email=payload.email
    )
    
    return APIResponse(
        message="Profile updated successfully",
        data={"user": user.model_dump(mode="json")}
    )
