"""FastAPI application exposing the Dropshelf operations over HTTP."""

from __future__ import annotations

import html
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import FastAPI, File, Form, Request, UploadFile, status
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, Response
from pydantic import BaseModel, Field

from dropshelf._dropshelf_async import DropshelfAsync
from dropshelf.config import DropshelfConfig
from dropshelf.fs.exceptions import DropshelfError, ErrorKind

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from dropshelf.fs.types import FileInfo, ShareInfo

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.PATH_ESCAPE: status.HTTP_403_FORBIDDEN,
    ErrorKind.DENY: status.HTTP_403_FORBIDDEN,
    ErrorKind.EXPIRED: status.HTTP_410_GONE,
    ErrorKind.STORAGE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class IdentityRequest(BaseModel):
    email: str
    folder: str = ""


class CreateFolderRequest(IdentityRequest):
    name: str = ""


class CreateFileRequest(IdentityRequest):
    name: str
    extension: str = ""


class PathRequest(BaseModel):
    email: str
    path: str


class SaveFileRequest(PathRequest):
    content: str


class RenameRequest(BaseModel):
    email: str
    old_path: str = Field(alias="oldPath")
    new_name: str = Field(alias="newName")

    model_config = {"populate_by_name": True}


class ShareRequest(BaseModel):
    email: str
    files: list[str] = Field(default_factory=list)
    folders: list[str] = Field(default_factory=list)
    permission: str = "read"


class PreviewRequest(BaseModel):
    content: str
    base_url: str = Field(default="", alias="baseUrl")

    model_config = {"populate_by_name": True}


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def _entry(info: FileInfo) -> dict[str, Any]:
    return {
        "name": info.name,
        "path": info.path,
        "isFolder": info.is_directory,
        "size": info.size_bytes or 0,
        "modified": info.updated_at.isoformat() if info.updated_at else None,
    }


def _share(info: ShareInfo) -> dict[str, Any]:
    return {
        "owner": info.owner_identity,
        "files": info.files,
        "folders": info.folders,
        "permission": info.permission,
        "createdAt": info.created_at.isoformat() if info.created_at else None,
        "expiresAt": info.expires_at.isoformat() if info.expires_at else None,
        "live": info.live,
    }


def _disposition(kind: str, filename: str) -> str:
    return f'{kind}; filename="{filename}"'


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    config: DropshelfConfig | None = None,
    shelf: DropshelfAsync | None = None,
) -> FastAPI:
    """Build the HTTP app around *shelf* (or a new one from *config*)."""
    shelf = shelf or DropshelfAsync(config or DropshelfConfig.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await shelf.open()
        try:
            yield
        finally:
            await shelf.close()

    app = FastAPI(title="Dropshelf", lifespan=lifespan)
    app.state.shelf = shelf

    @app.exception_handler(DropshelfError)
    async def dropshelf_error_handler(request: Request, exc: DropshelfError) -> JSONResponse:
        logger.warning(
            "%s %s failed: %s (%s)", request.method, request.url.path, exc, exc.kind.value
        )
        return JSONResponse(
            status_code=STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
            content={"detail": str(exc), "code": exc.kind.value},
        )

    # -- health -------------------------------------------------------------

    @app.get("/")
    async def health() -> JSONResponse:
        result = await shelf.health()
        return JSONResponse(
            status_code=status.HTTP_200_OK if result.ok else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": result.ok, "registry": result.registry, "message": result.message},
        )

    # -- namespace ----------------------------------------------------------

    @app.post("/upload")
    async def upload(
        email: Annotated[str, Form()],
        files: Annotated[list[UploadFile], File()],
        folder: Annotated[str, Form()] = "",
    ) -> dict[str, Any]:
        batch = [(f.filename or "", await f.read()) for f in files]
        stored = await shelf.upload(email, batch, folder)
        return {
            "message": "Files uploaded successfully",
            "files": [{"filename": name} for name in stored],
        }

    @app.post("/list-files")
    async def list_files(body: IdentityRequest) -> dict[str, Any]:
        entries = await shelf.list_files(body.email, body.folder)
        return {"files": [_entry(e) for e in entries]}

    @app.post("/create-folder")
    async def create_folder(body: CreateFolderRequest) -> dict[str, Any]:
        path = await shelf.create_folder(body.email, body.folder, body.name)
        return {"message": "Folder created", "path": path}

    @app.post("/create-file", status_code=status.HTTP_201_CREATED)
    async def create_file(body: CreateFileRequest) -> dict[str, Any]:
        filename = await shelf.create_file(body.email, body.folder, body.name, body.extension)
        return {"message": "File created", "filename": filename}

    @app.post("/read-file")
    async def read_file(body: PathRequest) -> dict[str, Any]:
        return {"content": await shelf.read_content(body.email, body.path)}

    @app.post("/save-file")
    async def save_file(body: SaveFileRequest) -> dict[str, Any]:
        await shelf.save_content(body.email, body.path, body.content)
        return {"message": "File saved"}

    @app.post("/rename-file")
    async def rename_file(body: RenameRequest) -> dict[str, Any]:
        path = await shelf.rename(body.email, body.old_path, body.new_name)
        return {"message": "File renamed successfully", "path": path}

    @app.post("/delete-file")
    async def delete_file(body: PathRequest) -> dict[str, Any]:
        await shelf.delete(body.email, body.path)
        return {"message": "File deleted successfully"}

    @app.get("/download/{email}/{path:path}")
    async def download(email: str, path: str) -> FileResponse:
        handle = await shelf.download(email, path)
        return FileResponse(
            handle.absolute_path,
            media_type=handle.media_type,
            filename=handle.filename,
        )

    # -- sharing ------------------------------------------------------------

    @app.post("/share", status_code=status.HTTP_201_CREATED)
    async def create_share(body: ShareRequest) -> dict[str, Any]:
        result = await shelf.create_share(
            body.email, body.files, body.permission, folders=body.folders
        )
        return {"token": result.token, "url": result.url, **_share(result.share)}

    @app.get("/share/{token}")
    async def share_info(token: str) -> dict[str, Any]:
        return _share(await shelf.get_share_info(token))

    @app.delete("/share/{token}")
    async def revoke_share(token: str) -> dict[str, Any]:
        await shelf.revoke_share(token)
        return {"message": "Share revoked"}

    @app.get("/share/{token}/{path:path}")
    async def access_share(token: str, path: str) -> Response:
        shared = await shelf.access_share(token, path)
        return Response(
            content=shared.content,
            media_type=shared.media_type,
            headers={
                "Content-Disposition": _disposition(shared.disposition, shared.filename)
            },
        )

    # -- previews -----------------------------------------------------------

    @app.post("/preview", status_code=status.HTTP_201_CREATED)
    async def create_preview(body: PreviewRequest) -> dict[str, Any]:
        result = await shelf.create_preview(body.content, body.base_url)
        return {
            "token": result.token,
            "url": result.url,
            "expiresAt": result.expires_at.isoformat(),
        }

    @app.get("/preview/{token}", response_class=HTMLResponse)
    async def get_preview(token: str) -> HTMLResponse:
        record = await shelf.get_preview(token)
        content = record.content
        if record.base_url:
            content = f'<base href="{html.escape(record.base_url, quote=True)}">\n{content}'
        return HTMLResponse(content)

    return app
