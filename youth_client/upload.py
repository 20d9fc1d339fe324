from __future__ import annotations

from pathlib import Path
from typing import Callable, Union

import httpx

from .client import ApiClient

FileArg = Union[str, Path, tuple[str, bytes]]


async def upload_file(
    client: ApiClient,
    file: FileArg,
    endpoint: str,
    on_progress: Callable[[int], None] | None = None,
    *,
    field_name: str = "file",
) -> httpx.Response:
    """POST one file as multipart/form-data through the client's interceptors.

    ``on_progress`` receives a whole percentage each time a chunk is sent,
    only while the encoded body size is known. No chunked, resumable or
    cancellable uploads.
    """
    if isinstance(file, (str, Path)):
        path = Path(file)
        payload = (path.name, path.read_bytes())
    else:
        payload = file

    def _progress(sent: int, total: int) -> None:
        if on_progress is not None and total:
            on_progress(round(sent * 100 / total))

    return await client.post(endpoint, files={field_name: payload}, on_upload_progress=_progress)
