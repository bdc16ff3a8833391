"""Model output shapes and their resolution to an image reference.

Replicate hands back different things depending on the SDK version and the
model: a plain URL string, an object or dict carrying ``output``/``url``, or a
stream of binary fragments (``FileOutput`` iterates its body in chunks). The
output is classified once into one of the variants below and then resolved by
``resolve_output``.
"""
from dataclasses import dataclass
from typing import Any, AsyncIterable, Iterable, Optional, Union

import structlog

from .datauri import to_data_uri


logger = structlog.get_logger("fitmirror")

FRAGMENT_MEDIA_TYPE = "image/jpeg"


@dataclass(frozen=True)
class DirectOutput:
    value: str


@dataclass(frozen=True)
class FieldOutput:
    value: Optional[str]


@dataclass(frozen=True)
class FragmentOutput:
    source: Union[AsyncIterable[Any], Iterable[Any]]


ModelOutput = Union[DirectOutput, FieldOutput, FragmentOutput]


def _field(raw: Any) -> Optional[str]:
    if isinstance(raw, dict):
        value = raw.get("output") or raw.get("url")
    else:
        value = getattr(raw, "output", None) or getattr(raw, "url", None)
    return value if isinstance(value, str) else None


def classify_output(raw: Any) -> ModelOutput:
    if isinstance(raw, str):
        return DirectOutput(raw)
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return FragmentOutput([bytes(raw)])
    if hasattr(raw, "__aiter__"):
        return FragmentOutput(raw)
    if isinstance(raw, dict) or raw is None:
        return FieldOutput(_field(raw) if raw is not None else None)
    if hasattr(raw, "__iter__"):
        return FragmentOutput(raw)
    return FieldOutput(_field(raw))


async def _iterate(source: Union[AsyncIterable[Any], Iterable[Any]]):
    if hasattr(source, "__aiter__"):
        async for item in source:  # type: ignore[union-attr]
            yield item
    else:
        for item in source:  # type: ignore[union-attr]
            yield item


async def _collect_fragments(source: Union[AsyncIterable[Any], Iterable[Any]]) -> Optional[str]:
    chunks: list[bytes] = []
    async for item in _iterate(source):
        if isinstance(item, str):
            # a URL inside the stream wins over anything collected so far
            return item
        if isinstance(item, (bytes, bytearray, memoryview)):
            chunks.append(bytes(item))
    if not chunks:
        return None
    combined = b"".join(chunks)
    logger.info("fragments_combined", chunks=len(chunks), size=len(combined))
    return to_data_uri(combined, FRAGMENT_MEDIA_TYPE)


async def resolve_output(output: ModelOutput) -> Optional[str]:
    """Turn a classified model output into a data URI or URL (or ``None``)."""
    if isinstance(output, DirectOutput):
        return output.value
    if isinstance(output, FieldOutput):
        return output.value
    return await _collect_fragments(output.source)
