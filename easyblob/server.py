"""
HTTP front end for blob storage.

Routes:
- POST /upload       multipart upload, file in the `blob` field
- GET /files         metadata of every stored file, newest first
- GET /blob/{id}     file content with its declared Content-Type
- DELETE /blob/{id}  remove file and metadata
"""

import uuid

import structlog
from aiohttp import BodyPartReader, hdrs, web

from easyblob.easyblob import EasyBlob
from easyblob.models.config import StorageConfig
from easyblob.models.errors import BlobStorageError, ErrorKind

EASYBLOB_KEY = web.AppKey("easyblob", EasyBlob)

UPLOAD_FIELD = "blob"
DEFAULT_MIME_TYPE = "application/octet-stream"

STATUS_BY_KIND = {
    ErrorKind.TOO_LARGE: 413,
    ErrorKind.TYPE_NOT_ALLOWED: 400,
    ErrorKind.INVALID_ID: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FILE_MISSING: 404,
    ErrorKind.WRITE_ERROR: 500,
    ErrorKind.STORE_ERROR: 500,
    ErrorKind.ERROR: 500,
}


def error_response(status: int, message: str, kind: None | ErrorKind = None) -> web.Response:
    body = {"error": message}
    if kind is not None:
        body["kind"] = kind.value
    return web.json_response(body, status=status)


@web.middleware
async def request_middleware(request: web.Request, handler):
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=uuid.uuid4().hex,
        method=request.method,
        path=request.path,
    )
    try:
        return await handler(request)
    except BlobStorageError as e:
        return error_response(
            STATUS_BY_KIND.get(e.kind, 500),
            e.public_message,
            e.kind,
        )
    except web.HTTPException:
        raise
    except Exception as e:
        request.app[EASYBLOB_KEY].log.error(
            "Unhandled error serving request",
            exc_info=e,
        )
        return error_response(500, BlobStorageError.public_message, ErrorKind.ERROR)


async def _read_capped(part: BodyPartReader, limit: int) -> bytes:
    # reads at most one chunk past `limit`, enough for the size check to reject it
    chunks = []
    size = 0
    while True:
        chunk = await part.read_chunk()
        if not chunk:
            break
        chunks.append(chunk)
        size += len(chunk)
        if size > limit:
            break
    return b"".join(chunks)


async def upload(request: web.Request) -> web.Response:
    easyblob = request.app[EASYBLOB_KEY]

    if not request.content_type.startswith("multipart/"):
        return error_response(400, "No file uploaded")

    reader = await request.multipart()
    async for part in reader:
        if not isinstance(part, BodyPartReader):
            continue
        if part.name != UPLOAD_FIELD or part.filename is None:
            await part.release()
            continue

        original_name = part.filename
        mime_type = part.headers.get(hdrs.CONTENT_TYPE, DEFAULT_MIME_TYPE)
        value = await _read_capped(part, easyblob.config.max_file_size)
        easyblob.log.info(
            "Received file upload",
            original_name=original_name,
            mime_type=mime_type,
        )
        blob_id = await easyblob.upload(value, original_name, mime_type)
        return web.json_response({"id": blob_id, "message": "File uploaded successfully"})

    return error_response(400, "No file uploaded")


async def list_files(request: web.Request) -> web.Response:
    easyblob = request.app[EASYBLOB_KEY]
    records = await easyblob.list_files()
    return web.json_response([record.model_dump(mode="json") for record in records])


async def get_blob(request: web.Request) -> web.Response:
    easyblob = request.app[EASYBLOB_KEY]
    retrieved = await easyblob.download(request.match_info["blob_id"])
    return web.Response(
        body=retrieved.content,
        headers={hdrs.CONTENT_TYPE: retrieved.mime_type},
    )


async def delete_blob(request: web.Request) -> web.Response:
    easyblob = request.app[EASYBLOB_KEY]
    await easyblob.delete(request.match_info["blob_id"])
    return web.json_response({"message": "File deleted successfully"})


async def _on_startup(app: web.Application):
    await app[EASYBLOB_KEY].on_startup()


async def _on_cleanup(app: web.Application):
    await app[EASYBLOB_KEY].close()


def create_app(config: StorageConfig, easyblob: None | EasyBlob = None) -> web.Application:
    if easyblob is None:
        easyblob = EasyBlob(config)

    app = web.Application(middlewares=[request_middleware])
    app[EASYBLOB_KEY] = easyblob
    app.router.add_post("/upload", upload)
    app.router.add_get("/files", list_files)
    app.router.add_get("/blob/{blob_id}", get_blob)
    app.router.add_delete("/blob/{blob_id}", delete_blob)
    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    return app
