"""
Посты и координация изменений: запись, файл обложки и счётчик post_count пользователя.

Три хранилища обновляются отдельными шагами, без общей транзакции. Порядок шагов
задан для каждой операции:

    create: файл -> запись -> post_count + 1
    edit:   удаление старого файла (ошибка не мешает) -> новый файл -> запись
    delete: удаление файла (ошибка прерывает операцию) -> запись -> post_count - 1

Сбой между шагами оставляет осиротевший файл или расхождение счётчика;
recount_posts пересчитывает счётчик по запросу оператора.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import uuid4

from config import Settings
from services.assets import AssetStore
from services.entities import Identity, Post, Upload
from services.errors import ForbiddenError, NotFoundError, RepositoryError, ValidationError
from services.repositories import PostRepository, UserRepository
from services.results import Err, Ok, Result

logger = logging.getLogger(__name__)

TAG_RE = re.compile(r"<[^>]*>")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def text_length(description: str) -> int:
    """Длина описания без html-разметки редактора."""
    return len(TAG_RE.sub("", description).strip())


class PostService:

    def __init__(self, posts: PostRepository, users: UserRepository, assets: AssetStore,
                 settings: Settings, now: Callable[[], datetime] = utcnow):
        self.posts = posts
        self.users = users
        self.assets = assets
        self.settings = settings
        self.now = now

    def _validate(self, title, category, description) -> Optional[Err]:
        if not title or not category or not description:
            return Err(ValidationError("Fill in all fields"))
        if text_length(description) < self.settings.DESCRIPTION_MIN_LENGTH:
            return Err(ValidationError(
                f"Description should be at least {self.settings.DESCRIPTION_MIN_LENGTH} characters"))
        return None

    def _check_thumbnail(self, thumbnail: Upload) -> Optional[Err]:
        if thumbnail.size > self.settings.THUMBNAIL_MAX_BYTES:
            return Err(ValidationError(
                f"Thumbnail too big. Should be at most {self.settings.THUMBNAIL_MAX_BYTES} bytes"))
        return None

    async def _get_owned(self, identity: Identity, post_id: str, action: str) -> Result[Post]:
        post = await self.posts.find_by_id(post_id)
        if post is None:
            return Err(NotFoundError("Post not found"))
        if post.creator_id != identity.id:
            logger.warning("User %s was refused: post %s owned by %s could not be %s",
                           identity.id, post_id, post.creator_id, action)
            return Err(ForbiddenError(f"Post could not be {action}"))
        return Ok(post)

    async def _adjust_post_count(self, user_id: str, delta: int):
        """Отдельный шаг после изменения записи; при сбое счётчик расходится с реальностью."""
        try:
            user = await self.users.find_by_id(user_id)
            if user is None:
                logger.error("post_count drift: user %s not found", user_id)
                return
            await self.users.update(user_id, post_count=max(user.post_count + delta, 0))
        except RepositoryError:
            logger.error("post_count drift: could not apply %+d for user %s", delta, user_id)

    async def create(self, identity: Identity, title: Optional[str], category: Optional[str],
                     description: Optional[str], thumbnail: Optional[Upload]) -> Result[Post]:
        if thumbnail is None or not thumbnail.filename:
            return Err(ValidationError("Fill in all fields and choose thumbnail"))
        invalid = self._validate(title, category, description) or self._check_thumbnail(thumbnail)
        if invalid:
            return invalid

        stored = await self.assets.store(thumbnail.data, thumbnail.filename, self.settings.THUMBNAIL_MAX_BYTES)
        if isinstance(stored, Err):
            return stored

        now = self.now()
        post = Post(id=str(uuid4()), title=title, category=category, description=description,
                    thumbnail=stored.value, creator_id=identity.id, created_at=now, updated_at=now)
        try:
            post = await self.posts.insert(post)
        except RepositoryError as exc:
            logger.error("Thumbnail %s is orphaned: post could not be created", stored.value)
            return Err(exc)

        await self._adjust_post_count(identity.id, 1)
        logger.info("User %s created post %s", identity.id, post.id)
        return Ok(post)

    async def list_all(self) -> Result[List[Post]]:
        return Ok(await self.posts.find(sort="-updated_at"))

    async def get_by_id(self, post_id: str) -> Result[Post]:
        post = await self.posts.find_by_id(post_id)
        if post is None:
            return Err(NotFoundError("Post not found"))
        return Ok(post)

    async def list_by_category(self, category: str) -> Result[List[Post]]:
        return Ok(await self.posts.find(sort="-created_at", category=category))

    async def list_by_author(self, author_id: str) -> Result[List[Post]]:
        return Ok(await self.posts.find(sort="-created_at", creator_id=author_id))

    async def edit(self, identity: Identity, post_id: str, title: Optional[str], category: Optional[str],
                   description: Optional[str], thumbnail: Optional[Upload] = None) -> Result[Post]:
        owned = await self._get_owned(identity, post_id, "edited")
        if isinstance(owned, Err):
            return owned
        old_post = owned.value

        invalid = self._validate(title, category, description)
        if not invalid and thumbnail is not None:
            invalid = self._check_thumbnail(thumbnail)
        if invalid:
            return invalid

        values = dict(title=title, category=category, description=description, updated_at=self.now())
        if thumbnail is not None:
            # в отличие от delete, ошибка удаления старого файла не останавливает правку
            deleted = await self.assets.delete(old_post.thumbnail)
            if isinstance(deleted, Err):
                logger.warning("Old thumbnail %s of post %s was not removed: %s",
                               old_post.thumbnail, post_id, deleted.error.message)

            stored = await self.assets.store(thumbnail.data, thumbnail.filename,
                                             self.settings.THUMBNAIL_MAX_BYTES)
            if isinstance(stored, Err):
                return stored
            values["thumbnail"] = stored.value

        try:
            updated = await self.posts.update(post_id, **values)
        except RepositoryError as exc:
            if "thumbnail" in values:
                logger.error("Thumbnail %s is orphaned: post %s still references removed %s",
                             values["thumbnail"], post_id, old_post.thumbnail)
            return Err(exc)
        if updated is None:
            return Err(NotFoundError("Post not found"))
        return Ok(updated)

    async def delete(self, identity: Identity, post_id: str) -> Result[str]:
        owned = await self._get_owned(identity, post_id, "deleted")
        if isinstance(owned, Err):
            return owned
        post = owned.value

        deleted = await self.assets.delete(post.thumbnail)
        if isinstance(deleted, Err):
            return deleted

        try:
            removed = await self.posts.delete(post_id)
        except RepositoryError as exc:
            logger.error("Post %s still references removed thumbnail %s", post_id, post.thumbnail)
            return Err(exc)
        # строку мог удалить параллельный запрос, счётчик уже уменьшен им
        if removed:
            await self._adjust_post_count(post.creator_id, -1)
        logger.info("User %s deleted post %s", identity.id, post_id)
        return Ok("Post deleted successfully")

    async def recount_posts(self, user_id: str) -> Result[int]:
        user = await self.users.find_by_id(user_id)
        if user is None:
            return Err(NotFoundError("User not found"))
        count = len(await self.posts.find(creator_id=user_id))
        if count != user.post_count:
            logger.info("Corrected post_count of user %s: %d -> %d", user_id, user.post_count, count)
            await self.users.update(user_id, post_count=count)
        return Ok(count)
