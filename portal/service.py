"""JSON HTTP API consumed by the student portal browser client."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from .application import PortalState, build_state
from .config import Settings
from .errors import PortalError
from .models import Course, User

logger = logging.getLogger("studentportal.service")

SESSION_COOKIE_NAME = "portal_session"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(_CamelModel):
    full_name: Optional[str] = Field(default=None, alias="fullName")
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None


class LoginRequest(_CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    remember: Optional[bool] = False


class CourseRegistrationRequest(_CamelModel):
    course_code: Optional[str] = Field(default=None, alias="courseCode")


class UserSummary(_CamelModel):
    id: str
    full_name: str = Field(alias="fullName")
    email: str


class UserProfile(UserSummary):
    phone: str
    enrolled_course_ids: List[str] = Field(alias="enrolledCourseIds")
    # Name read by the browser dashboard script.
    registered_courses: List[str] = Field(alias="registeredCourses")


class AuthResponse(BaseModel):
    success: bool = True
    user: UserSummary


class SuccessResponse(BaseModel):
    success: bool = True


class MeResponse(BaseModel):
    user: Optional[UserProfile] = None


class CourseView(BaseModel):
    code: str
    title: str
    instructor: str
    schedule: str
    credits: int
    availability: int


class CourseListResponse(BaseModel):
    courses: List[CourseView]


class CourseDetailResponse(BaseModel):
    course: CourseView


class CourseRegistrationResponse(_CamelModel):
    success: bool = True
    registered_courses: List[str] = Field(alias="registeredCourses")


def user_to_summary(user: User) -> UserSummary:
    return UserSummary(id=user.id, full_name=user.full_name, email=user.email)


def user_to_profile(user: User) -> UserProfile:
    enrolled = list(user.enrolled_course_ids)
    return UserProfile(
        id=user.id,
        full_name=user.full_name,
        email=user.email,
        phone=user.phone,
        enrolled_course_ids=enrolled,
        registered_courses=list(enrolled),
    )


def course_to_view(course: Course) -> CourseView:
    return CourseView(
        code=course.code,
        title=course.title,
        instructor=course.instructor,
        schedule=course.schedule,
        credits=course.credits,
        availability=course.availability,
    )


def register_api_routes(app: FastAPI, state: PortalState) -> None:
    """Expose the portal JSON endpoints on ``app``."""

    secure_cookies = state.settings.secure_cookies

    def get_state() -> PortalState:
        return state

    def optional_user(request: Request, portal: PortalState = Depends(get_state)) -> Optional[User]:
        return portal.gate.current_user(request.cookies.get(SESSION_COOKIE_NAME))

    def require_user(request: Request, portal: PortalState = Depends(get_state)) -> User:
        return portal.gate.require_auth(request.cookies.get(SESSION_COOKIE_NAME))

    def _issue_session_cookie(response: Response, token: str) -> None:
        response.set_cookie(
            SESSION_COOKIE_NAME,
            token,
            max_age=state.sessions.cookie_max_age(token),
            secure=secure_cookies,
            httponly=True,
            samesite="lax",
            path="/",
        )

    def _clear_session_cookie(response: Response) -> None:
        response.delete_cookie(SESSION_COOKIE_NAME, path="/")

    @app.get("/api/health")
    def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/register", response_model=AuthResponse)
    def register(
        response: Response,
        payload: Optional[RegisterRequest] = None,
        portal: PortalState = Depends(get_state),
    ) -> AuthResponse:
        payload = payload or RegisterRequest()
        user = portal.identity.register(
            payload.full_name,
            payload.email,
            payload.password,
            payload.phone,
        )
        token = portal.identity.start_session(user)
        _issue_session_cookie(response, token)
        return AuthResponse(user=user_to_summary(user))

    @app.post("/api/login", response_model=AuthResponse)
    def login(
        request: Request,
        response: Response,
        payload: Optional[LoginRequest] = None,
        portal: PortalState = Depends(get_state),
    ) -> AuthResponse:
        payload = payload or LoginRequest()
        user, token = portal.identity.login(
            payload.email,
            payload.password,
            remember=bool(payload.remember),
            existing_token=request.cookies.get(SESSION_COOKIE_NAME),
        )
        _issue_session_cookie(response, token)
        return AuthResponse(user=user_to_summary(user))

    @app.post("/api/logout", response_model=SuccessResponse)
    def logout(
        request: Request,
        response: Response,
        portal: PortalState = Depends(get_state),
    ) -> SuccessResponse:
        portal.identity.logout(request.cookies.get(SESSION_COOKIE_NAME))
        _clear_session_cookie(response)
        return SuccessResponse()

    @app.get("/api/me", response_model=MeResponse)
    def read_current_user(
        request: Request,
        response: Response,
        user: Optional[User] = Depends(optional_user),
    ) -> MeResponse:
        if user is None:
            if request.cookies.get(SESSION_COOKIE_NAME):
                _clear_session_cookie(response)
            return MeResponse(user=None)
        return MeResponse(user=user_to_profile(user))

    @app.get("/api/courses", response_model=CourseListResponse)
    def list_courses(
        q: Optional[str] = Query(default=None),
        portal: PortalState = Depends(get_state),
    ) -> CourseListResponse:
        courses = portal.catalog.list(q)
        return CourseListResponse(courses=[course_to_view(course) for course in courses])

    @app.post("/api/courses/register", response_model=CourseRegistrationResponse)
    def register_course(
        payload: Optional[CourseRegistrationRequest] = None,
        user: User = Depends(require_user),
        portal: PortalState = Depends(get_state),
    ) -> CourseRegistrationResponse:
        payload = payload or CourseRegistrationRequest()
        registered = portal.enrollment.enroll(user, payload.course_code)
        return CourseRegistrationResponse(registered_courses=registered)

    @app.get("/api/courses/{code}", response_model=CourseDetailResponse)
    def read_course(code: str, portal: PortalState = Depends(get_state)) -> CourseDetailResponse:
        return CourseDetailResponse(course=course_to_view(portal.catalog.get_by_code(code)))


def register_error_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"error": <message>}``."""

    @app.exception_handler(PortalError)
    async def handle_portal_error(_: Request, exc: PortalError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )


def create_app(
    *,
    state: PortalState | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the student portal."""

    portal = state or build_state(settings)

    if not portal.settings.secure_cookies:
        logger.warning(
            "Session cookies are not marked as secure. Only disable secure cookies for"
            " local development."
        )

    app = FastAPI(
        title="Student Portal API",
        version="1.0.0",
        description="Course catalog, accounts and enrollment for the student portal.",
    )
    app.state.portal = portal

    register_error_handlers(app)
    register_api_routes(app, portal)
    return app


__all__ = ["SESSION_COOKIE_NAME", "create_app", "register_api_routes", "register_error_handlers"]
