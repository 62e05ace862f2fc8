import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Depends, status, UploadFile, File, Form, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session

from BaseModel.ResponsePostBase import MessageRead, PostRead
from BaseModel.ResponseUserBase import UserRead
from BaseModel.UserLoginBase import Token, UserLogin
from BaseModel.UserUpdateBase import UsersUpdateBase
from BaseModel.UsersBase import UsersBase
from config import get_settings
from models import db_session
from services.assets import AssetStore, LocalAssetStore
from services.entities import Identity, Upload
from services.errors import ServiceError
from services.identity import IdentityService
from services.posts import PostService
from services.repositories import SqlPostRepository, SqlUserRepository
from services.results import Err, Result

settings = get_settings()
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_session.global_init(settings.DATABASE_URL)
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    logger.info("Started %s, uploads in %s", settings.PROJECT_NAME, settings.UPLOAD_DIR)
    yield


app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login")


def get_db():
    db = db_session.create_session()
    try:
        yield db
    finally:
        db.close()


def get_asset_store() -> AssetStore:
    return LocalAssetStore(settings.UPLOAD_DIR)


def get_identity_service(db_sess: Session = Depends(get_db),
                         assets: AssetStore = Depends(get_asset_store)) -> IdentityService:
    return IdentityService(SqlUserRepository(db_sess), assets, settings)


def get_post_service(db_sess: Session = Depends(get_db),
                     assets: AssetStore = Depends(get_asset_store)) -> PostService:
    return PostService(SqlPostRepository(db_sess), SqlUserRepository(db_sess), assets, settings)


def get_current_identity(token: str = Depends(oauth2_scheme),
                         identity_service: IdentityService = Depends(get_identity_service)) -> Identity:
    """Проверяет bearer-токен и возвращает {id, name}; передаётся в сервисы явно."""
    return unwrap(identity_service.read_token(token))


def unwrap(result: Result):
    """Единственное место, где ошибки сервисов превращаются в HTTP-статусы."""
    if isinstance(result, Err):
        raise HTTPException(status_code=result.error.status_code, detail=result.error.message)
    return result.value


async def read_upload(file: Optional[UploadFile]) -> Optional[Upload]:
    if file is None or not file.filename:
        return None
    return Upload(filename=file.filename, data=await file.read())


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.post("/register", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def register_user(user: UsersBase, identity_service: IdentityService = Depends(get_identity_service)):
    message = unwrap(await identity_service.register(
        user.name, user.email, user.password, user.confirm_password
    ))
    return {"detail": message}


@app.post("/login", response_model=Token)
async def login_user(user: UserLogin, identity_service: IdentityService = Depends(get_identity_service)):
    return unwrap(await identity_service.login(user.email, user.password))


@app.get("/users", response_model=List[UserRead])
async def get_authors(identity_service: IdentityService = Depends(get_identity_service)):
    return unwrap(await identity_service.list_authors())


@app.get("/users/{id}", response_model=UserRead)
async def get_user(id: str, identity_service: IdentityService = Depends(get_identity_service)):
    return unwrap(await identity_service.get_profile(id))


@app.put("/users/change-avatar", response_model=UserRead)
async def change_avatar(
        avatar: UploadFile = File(None),
        identity: Identity = Depends(get_current_identity),
        identity_service: IdentityService = Depends(get_identity_service)
):
    return unwrap(await identity_service.change_avatar(identity.id, await read_upload(avatar)))


@app.put("/users/edit-user", response_model=UserRead)
async def edit_user(
        user: UsersUpdateBase,
        identity: Identity = Depends(get_current_identity),
        identity_service: IdentityService = Depends(get_identity_service)
):
    return unwrap(await identity_service.edit_profile(
        identity.id, user.name, user.email, user.current_password, user.new_password, user.confirm_new_password
    ))


@app.post("/posts", response_model=PostRead, status_code=status.HTTP_201_CREATED)
async def create_post(
        title: str | None = Form(None),
        category: str | None = Form(None),
        description: str | None = Form(None),
        thumbnail: UploadFile = File(None),
        identity: Identity = Depends(get_current_identity),
        post_service: PostService = Depends(get_post_service)
):
    return unwrap(await post_service.create(
        identity, title, category, description, await read_upload(thumbnail)
    ))


@app.get("/posts", response_model=List[PostRead])
async def get_posts(post_service: PostService = Depends(get_post_service)):
    return unwrap(await post_service.list_all())


@app.get("/posts/categories/{category}", response_model=List[PostRead])
async def get_category_posts(category: str, post_service: PostService = Depends(get_post_service)):
    return unwrap(await post_service.list_by_category(category))


@app.get("/posts/users/{user_id}", response_model=List[PostRead])
async def get_user_posts(user_id: str, post_service: PostService = Depends(get_post_service)):
    return unwrap(await post_service.list_by_author(user_id))


@app.get("/posts/{post_id}", response_model=PostRead)
async def get_post(post_id: str, post_service: PostService = Depends(get_post_service)):
    return unwrap(await post_service.get_by_id(post_id))


@app.patch("/posts/{post_id}", response_model=PostRead)
async def edit_post(
        post_id: str,
        title: str | None = Form(None),
        category: str | None = Form(None),
        description: str | None = Form(None),
        thumbnail: UploadFile = File(None),
        identity: Identity = Depends(get_current_identity),
        post_service: PostService = Depends(get_post_service)
):
    return unwrap(await post_service.edit(
        identity, post_id, title, category, description, await read_upload(thumbnail)
    ))


@app.delete("/posts/{post_id}", response_model=MessageRead)
async def delete_post(
        post_id: str,
        identity: Identity = Depends(get_current_identity),
        post_service: PostService = Depends(get_post_service)
):
    return {"detail": unwrap(await post_service.delete(identity, post_id))}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)
