import logging

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from voice_notes.server.store import (
    InvalidCredentialsError,
    JsonNoteStore,
    Note,
    UnauthorizedError,
    UserExistsError,
)

logger = logging.getLogger(__name__)


class Credentials(BaseModel):
    username: str | None = None
    password: str | None = None


class NoteRequest(BaseModel):
    transcript: str | None = None


class UserOut(BaseModel):
    id: str
    username: str


class TokenOut(BaseModel):
    token: str


class ApiError(Exception):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def get_store(request: Request) -> JsonNoteStore:
    return request.app.state.store


def current_user(
    authorization: str = Header(default=""),
    store: JsonNoteStore = Depends(get_store),
) -> str:
    token = authorization.replace("Bearer ", "", 1).strip()
    try:
        return store.authenticate(token)
    except UnauthorizedError:
        raise ApiError(401, "Unauthorized")


def create_app(store: JsonNoteStore) -> FastAPI:
    app = FastAPI(title="Voice Notes API")
    app.state.store = store

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return _error(exc.status_code, message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug("Rejected request body on %s: %s", request.url.path, exc.errors())
        return _error(400, "invalid request body")

    @app.post("/register", status_code=201, response_model=UserOut)
    def register(body: Credentials, store: JsonNoteStore = Depends(get_store)) -> UserOut:
        if not body.username or not body.password:
            raise ApiError(400, "username and password required")
        try:
            user = store.register(body.username, body.password)
        except UserExistsError:
            raise ApiError(409, "user exists")
        return UserOut(id=user.id, username=user.username)

    @app.post("/login", response_model=TokenOut)
    def login(body: Credentials, store: JsonNoteStore = Depends(get_store)) -> TokenOut:
        try:
            token = store.login(body.username or "", body.password or "")
        except InvalidCredentialsError:
            raise ApiError(401, "invalid credentials")
        return TokenOut(token=token)

    @app.post("/notes", status_code=201, response_model=Note)
    def create_note(
        body: NoteRequest,
        user_id: str = Depends(current_user),
        store: JsonNoteStore = Depends(get_store),
    ) -> Note:
        if not body.transcript:
            raise ApiError(400, "transcript required")
        return store.add_note(user_id, body.transcript)

    @app.get("/notes", response_model=list[Note])
    def list_notes(
        user_id: str = Depends(current_user),
        store: JsonNoteStore = Depends(get_store),
    ) -> list[Note]:
        return store.list_notes(user_id)

    return app
