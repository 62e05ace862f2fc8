import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from config import Settings
from services.assets import AssetStore
from services.entities import Identity, Upload, User
from services.errors import AuthError, NotFoundError, RepositoryError, ValidationError
from services.repositories import UserRepository
from services.results import Err, Ok, Result

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityService:
    """
    Регистрация, вход и изменение профиля.

    Хэши паролей не покидают этот класс: наружу отдаются только сущности User,
    а схемы ответов (BaseModel.ResponseUserBase) не содержат поля password_hash.
    """

    def __init__(self, users: UserRepository, assets: AssetStore, settings: Settings):
        self.users = users
        self.assets = assets
        self.settings = settings
        self.pwd_context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS
        )

    # хеширование и проверка пароля
    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, password_hash: str) -> bool:
        return self.pwd_context.verify(plain_password, password_hash)

    # генерация JWT
    def create_access_token(self, user: User) -> str:
        expire = datetime.now(timezone.utc) + timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        to_encode = {"id": user.id, "name": user.name, "exp": expire}
        return jwt.encode(to_encode, self.settings.SECRET_KEY, algorithm=self.settings.ALGORITHM)

    def read_token(self, token: str) -> Result[Identity]:
        try:
            payload = jwt.decode(token, self.settings.SECRET_KEY, algorithms=[self.settings.ALGORITHM])
        except JWTError:
            return Err(AuthError("Invalid or expired token"))
        user_id = payload.get("id")
        if not user_id:
            return Err(AuthError("Invalid token: missing user ID"))
        return Ok(Identity(id=user_id, name=payload.get("name", "")))

    async def register(self, name: Optional[str], email: Optional[str], password: Optional[str],
                       confirm_password: Optional[str]) -> Result[str]:
        if not name or not email or not password or not confirm_password:
            return Err(ValidationError("Fill in all fields"))

        email = normalize_email(email)
        if await self.users.find_by_field("email", email):
            return Err(ValidationError("Email already exists"))

        if len(password) < self.settings.PASSWORD_MIN_LENGTH:
            return Err(ValidationError(
                f"Password should be at least {self.settings.PASSWORD_MIN_LENGTH} characters"))

        if password != confirm_password:
            return Err(ValidationError("Passwords do not match"))

        user = User(id=str(uuid4()), name=name, email=email, password_hash=self.hash_password(password))
        try:
            await self.users.insert(user)
        except RepositoryError:
            # уникальный индекс по email мог сработать при параллельной регистрации
            return Err(ValidationError("User registration failed"))

        logger.info("Registered user %s", user.id)
        return Ok(f"New user {email} registered")

    async def login(self, email: Optional[str], password: Optional[str]) -> Result[dict]:
        if not email or not password:
            return Err(ValidationError("Fill in all fields"))

        user = await self.users.find_by_field("email", normalize_email(email))
        if user is None:
            # тратим время на проверку хэша, чтобы не раскрывать существование аккаунта
            self.pwd_context.dummy_verify()
            logger.info("Failed login attempt")
            return Err(AuthError(INVALID_CREDENTIALS))

        if not self.verify_password(password, user.password_hash):
            logger.info("Failed login attempt")
            return Err(AuthError(INVALID_CREDENTIALS))

        return Ok({"token": self.create_access_token(user), "id": user.id, "name": user.name})

    async def get_profile(self, user_id: str) -> Result[User]:
        user = await self.users.find_by_id(user_id)
        if user is None:
            return Err(NotFoundError("User not found"))
        return Ok(user)

    async def list_authors(self) -> Result[List[User]]:
        return Ok(await self.users.find())

    async def change_avatar(self, user_id: str, avatar: Optional[Upload]) -> Result[User]:
        if avatar is None or not avatar.filename:
            return Err(ValidationError("No avatar selected"))
        if avatar.size > self.settings.AVATAR_MAX_BYTES:
            return Err(ValidationError(
                f"Profile picture too big. Should be at most {self.settings.AVATAR_MAX_BYTES} bytes"))

        user = await self.users.find_by_id(user_id)
        if user is None:
            return Err(NotFoundError("User not found"))

        # Старый аватар удаляется до записи нового. Если запись затем упадёт,
        # пользователь останется со ссылкой на удалённый файл.
        if user.avatar:
            deleted = await self.assets.delete(user.avatar)
            if isinstance(deleted, Err):
                logger.warning("Old avatar %s of user %s was not removed: %s",
                               user.avatar, user_id, deleted.error.message)

        stored = await self.assets.store(avatar.data, avatar.filename, self.settings.AVATAR_MAX_BYTES)
        if isinstance(stored, Err):
            return stored

        try:
            updated = await self.users.update(user_id, avatar=stored.value)
        except RepositoryError as exc:
            logger.error("Avatar %s is orphaned: user %s was not updated", stored.value, user_id)
            return Err(exc)
        if updated is None:
            return Err(ValidationError("Avatar could not be changed"))
        return Ok(updated)

    async def edit_profile(self, self_id: str, name: Optional[str], email: Optional[str],
                           current_password: Optional[str], new_password: Optional[str],
                           confirm_new_password: Optional[str]) -> Result[User]:
        if not all([name, email, current_password, new_password, confirm_new_password]):
            return Err(ValidationError("Fill in all fields"))

        user = await self.users.find_by_id(self_id)
        if user is None:
            return Err(NotFoundError("User not found"))

        # email -- ключ для входа, он не должен принадлежать другому аккаунту
        email = normalize_email(email)
        owner = await self.users.find_by_field("email", email)
        if owner is not None and owner.id != self_id:
            return Err(ValidationError("Email already exists"))

        if not self.verify_password(current_password, user.password_hash):
            return Err(AuthError("Invalid current password"))

        if new_password != confirm_new_password:
            return Err(ValidationError("New passwords do not match"))

        try:
            updated = await self.users.update(
                self_id, name=name, email=email, password_hash=self.hash_password(new_password)
            )
        except RepositoryError:
            # уникальный индекс по email мог сработать при параллельном изменении
            return Err(ValidationError("Email already exists"))
        if updated is None:
            return Err(NotFoundError("User not found"))
        return Ok(updated)
