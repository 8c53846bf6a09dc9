"""File descriptor parsing and byte-source resolution for uploads.

A descriptor either carries its contents inline (``{"name", "contents"}``) or
references a file the host staged for this execution (``{"name",
"$superblocksId"}``). Every descriptor must resolve to exactly one byte
source before anything is uploaded.
"""

from __future__ import annotations

import json
import mimetypes
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from s3plugin.infra.storage.client import ObjectBody
from s3plugin.services.errors import ActionValidationError, FileResolutionError

REFERENCE_ID_KEY = "$superblocksId"

PARSE_ERROR_MESSAGE = (
    "Can't parse the file objects. They must be an array of JSON objects."
)
NOT_A_LIST_MESSAGE = "File objects must be an array of JSON objects."
UNREADABLE_MESSAGE = (
    "Cannot read files. Files can either be Superblocks files or "
    "{ name: string; contents: string }."
)


@dataclass(frozen=True, slots=True)
class StagedFile:
    """A file the host wrote to temporary storage before execute."""

    filename: str
    path: str
    originalname: str | None = None
    mimetype: str | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "StagedFile":
        return cls(
            filename=str(raw.get("filename") or ""),
            path=str(raw.get("path") or ""),
            originalname=raw.get("originalname"),
            mimetype=raw.get("mimetype"),
        )

    def matches(self, reference_id: str) -> bool:
        # The host may append an agent suffix to staged names.
        return self.filename == reference_id or self.filename.startswith(
            f"{reference_id}_"
        )


def find_staged_file(
    reference_id: str, staged_files: Sequence[StagedFile]
) -> StagedFile | None:
    """Exact filename first, then a single ``<id>_`` suffixed name.

    Raises:
        FileResolutionError: If several suffixed names match and none exactly.
    """
    for staged in staged_files:
        if staged.filename == reference_id:
            return staged
    candidates = [f for f in staged_files if f.matches(reference_id)]
    if len(candidates) > 1:
        raise FileResolutionError(
            f"Ambiguous staged files for {reference_id}: "
            f"{', '.join(f.filename for f in candidates)}"
        )
    return candidates[0] if candidates else None


@dataclass(frozen=True, slots=True)
class ByteSource:
    """Resolved contents for one descriptor.

    Staged files are opened only inside :meth:`open` so large files stream
    from disk instead of being read into memory.
    """

    name: str
    inline: ObjectBody | None = None
    path: str | None = None

    @contextmanager
    def open(self) -> Iterator[ObjectBody]:
        if self.path is None:
            yield self.inline if self.inline is not None else b""
            return
        with open(self.path, "rb") as stream:
            yield stream


def guess_content_type(object_key: str) -> str | None:
    content_type, _ = mimetypes.guess_type(object_key)
    return content_type


def parse_file_objects(raw: Any) -> list[Any]:
    """Accept a list of descriptors or its JSON encoding."""
    file_objects = raw
    if isinstance(raw, str):
        try:
            file_objects = json.loads(raw)
        except ValueError as exc:
            raise ActionValidationError(PARSE_ERROR_MESSAGE) from exc
    if not isinstance(file_objects, list):
        raise ActionValidationError(NOT_A_LIST_MESSAGE)
    return file_objects


def descriptor_name(descriptor: Any) -> Any:
    if isinstance(descriptor, Mapping):
        return descriptor.get("name")
    return None


def _is_staged_reference(descriptor: Any) -> bool:
    return isinstance(descriptor, Mapping) and isinstance(
        descriptor.get(REFERENCE_ID_KEY), str
    )


def _is_inline_file(descriptor: Any) -> bool:
    return (
        isinstance(descriptor, Mapping)
        and isinstance(descriptor.get("name"), str)
        and "contents" in descriptor
    )


def coerce_body(contents: Any) -> ObjectBody:
    if contents is None:
        return ""
    if isinstance(contents, (str, bytes)):
        return contents
    return json.dumps(contents)


def resolve_byte_sources(
    descriptors: Sequence[Any], staged_files: Sequence[StagedFile]
) -> list[ByteSource]:
    """Resolve every descriptor, failing the whole batch on the first miss."""
    sources: list[ByteSource] = []
    for descriptor in descriptors:
        if _is_staged_reference(descriptor):
            name = str(descriptor.get("name") or "")
            reference_id = descriptor[REFERENCE_ID_KEY]
            match = find_staged_file(reference_id, staged_files)
            if match is None or not match.path:
                raise FileResolutionError(
                    f"Could not locate file contents for file {descriptor.get('name')}"
                )
            if not Path(match.path).is_file():
                raise FileResolutionError(
                    f"Staged file for {descriptor.get('name')} is missing at {match.path}"
                )
            sources.append(ByteSource(name=name, path=match.path))
        elif _is_inline_file(descriptor):
            sources.append(
                ByteSource(
                    name=descriptor["name"],
                    inline=coerce_body(descriptor["contents"]),
                )
            )
        else:
            raise FileResolutionError(UNREADABLE_MESSAGE)
    return sources
