import hashlib
import logging
import secrets
import threading
import time
import uuid
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class NoteStoreError(Exception):
    pass


class UserExistsError(NoteStoreError):
    pass


class InvalidCredentialsError(NoteStoreError):
    pass


class UnauthorizedError(NoteStoreError):
    pass


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(_CamelModel):
    id: str
    username: str
    password_hash: str


class Note(_CamelModel):
    id: str
    user_id: str
    transcript: str
    notes: str
    created_at: int


class NoteDatabase(_CamelModel):
    users: list[User] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)
    tokens: dict[str, str] = Field(default_factory=dict)


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def placeholder_notes(transcript: str) -> str:
    return f"Notes for: {transcript}"


def _now_millis() -> int:
    return int(time.time() * 1000)


class JsonNoteStore:
    def __init__(
        self,
        path: str | Path,
        summarize: Callable[[str], str] = placeholder_notes,
        clock: Callable[[], int] = _now_millis,
    ) -> None:
        self._path = Path(path)
        self._summarize = summarize
        self._clock = clock
        self._lock = threading.Lock()
        self._db = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> NoteDatabase:
        if not self._path.exists():
            return NoteDatabase()
        try:
            return NoteDatabase.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (ValidationError, ValueError, OSError):
            logger.exception("Failed to parse database %s, using empty database", self._path)
            return NoteDatabase()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            self._db.model_dump_json(by_alias=True, indent=2),
            encoding="utf-8",
        )

    def register(self, username: str, password: str) -> User:
        with self._lock:
            if any(user.username == username for user in self._db.users):
                raise UserExistsError(username)
            user = User(
                id=str(uuid.uuid4()),
                username=username,
                password_hash=hash_password(password),
            )
            self._db.users.append(user)
            self._save()
        logger.info("Registered user %s", username)
        return user

    def login(self, username: str, password: str) -> str:
        with self._lock:
            user = next((u for u in self._db.users if u.username == username), None)
            if user is None or user.password_hash != hash_password(password):
                raise InvalidCredentialsError(username)
            token = secrets.token_hex(16)
            self._db.tokens[token] = user.id
            self._save()
        logger.info("User %s logged in", username)
        return token

    def authenticate(self, token: str) -> str:
        user_id = self._db.tokens.get(token) if token else None
        if not user_id:
            raise UnauthorizedError()
        return user_id

    def add_note(self, user_id: str, transcript: str) -> Note:
        note = Note(
            id=str(uuid.uuid4()),
            user_id=user_id,
            transcript=transcript,
            notes=self._summarize(transcript),
            created_at=self._clock(),
        )
        with self._lock:
            self._db.notes.append(note)
            self._save()
        return note

    def list_notes(self, user_id: str) -> list[Note]:
        return [note for note in self._db.notes if note.user_id == user_id]
