"""HTTP route definitions for the account identity service."""

from __future__ import annotations

from fastapi import APIRouter, Cookie, Depends, Header, HTTPException, Request, Response, status
from pydantic import BaseModel, EmailStr, Field

from ..config import get_settings
from ..domain.account import Account
from ..domain.authentication import Err
from ..domain.contracts import RegistrationForm
from ..domain.errors import SessionError
from ..domain.service import AccountService

router = APIRouter(prefix="/v1")

settings = get_settings()


class AccountResponse(BaseModel):
    """Serialised representation of an `Account` aggregate."""

    account_id: str
    email: EmailStr
    username: str
    active: bool
    state: str
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            account_id=account.account_id,
            email=account.email,
            username=account.username,
            active=account.active,
            state=account.state.value,
            created_at=account.created_at.isoformat(),
            updated_at=account.updated_at.isoformat(),
        )


class RegisterRequest(BaseModel):
    """Registration payload; content rules are applied by the domain validator."""

    email: str | None = None
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    confirmation_password: str | None = Field(
        default=None, alias="confirmationPassword", repr=False
    )

    model_config = {"populate_by_name": True}


class VerifyRequest(BaseModel):
    """JSON body carrying a verification token."""

    token: str


class LoginRequest(BaseModel):
    """Credentials presented to open a session."""

    email: str
    password: str = Field(repr=False)


class SessionResponse(BaseModel):
    """Session issued after a successful login."""

    session_id: str
    expires_in: int
    account: AccountResponse


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def current_account(
    service: AccountService = Depends(get_service),
    authorization: str | None = Header(default=None),
    session_cookie: str | None = Cookie(default=None, alias=settings.session_cookie_name),
) -> Account:
    """Resolve the principal from the session cookie or a bearer header."""
    session_id = session_cookie
    if authorization and authorization.lower().startswith("bearer "):
        session_id = authorization[7:].strip()
    if not session_id:
        raise SessionError()
    return service.resolve_session(session_id)


@router.post("/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Register a pending account and send its verification email."""
    account = service.register(
        RegistrationForm(
            email=payload.email,
            username=payload.username,
            password=payload.password,
            confirmation_password=payload.confirmation_password,
        )
    )
    return AccountResponse.from_domain(account)


@router.post("/accounts/verify", response_model=AccountResponse)
def verify_account(
    payload: VerifyRequest,
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Redeem a verification token submitted as JSON."""
    return AccountResponse.from_domain(service.verify(payload.token))


@router.get("/accounts/verify/{token}", response_model=AccountResponse)
def verify_account_link(
    token: str,
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Redeem a verification token from the link in the email."""
    return AccountResponse.from_domain(service.verify(token))


@router.post("/sessions", response_model=SessionResponse)
def login(
    response: Response,
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
) -> SessionResponse:
    """Authenticate and open a session."""
    result = service.authenticate(payload.email, payload.password)
    if isinstance(result, Err):
        raise result.to_exception()

    session_id = service.open_session(result.principal)
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
    )
    return SessionResponse(
        session_id=session_id,
        expires_in=settings.session_ttl_seconds,
        account=AccountResponse.from_domain(result.principal),
    )


@router.delete("/sessions", status_code=status.HTTP_204_NO_CONTENT)
def logout() -> Response:
    """Drop the session cookie."""
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get("/me", response_model=AccountResponse)
def me(account: Account = Depends(current_account)) -> AccountResponse:
    """Return the account behind the current session."""
    return AccountResponse.from_domain(account)


@router.get("/accounts/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str,
    principal: Account = Depends(current_account),
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Retrieve an account; callers may only read their own record."""
    if principal.account_id != account_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account not found")
    account = service.get_account(account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account not found")
    return AccountResponse.from_domain(account)
