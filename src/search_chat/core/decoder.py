import json
from typing import Any, Callable, Dict, Mapping, Optional

from search_chat.core.domain import (
    Checkpoint,
    Content,
    Decoded,
    DecodeFailure,
    End,
    SearchError,
    SearchResults,
    SearchStart,
    StreamEvent,
    Unknown,
)


class _Malformed(Exception):
    pass


def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise _Malformed(f'field {key!r} must be a string, got {type(value).__name__}')
    return value


def _extract_urls(data: Mapping[str, Any]) -> tuple[str, ...]:
    urls = data.get('urls')

    # the backend sometimes sends the list json-encoded a second time
    if isinstance(urls, str):
        try:
            urls = json.loads(urls)
        except (ValueError, RecursionError) as e:
            raise _Malformed(f'field "urls" is not a json array: {e}') from e

    if not isinstance(urls, list):
        raise _Malformed(f'field "urls" must be a list, got {type(urls).__name__}')
    if not all(isinstance(u, str) for u in urls):
        raise _Malformed('field "urls" must only contain strings')
    return tuple(urls)


_BUILDERS: Dict[str, Callable[[Mapping[str, Any]], StreamEvent]] = {
    'checkpoint': lambda d: Checkpoint(checkpoint_id=_require_str(d, 'checkpoint_id')),
    'content': lambda d: Content(delta=_require_str(d, 'content')),
    'search_start': lambda d: SearchStart(query=_require_str(d, 'query')),
    'search_results': lambda d: SearchResults(urls=_extract_urls(d)),
    'search_error': lambda d: SearchError(message=_require_str(d, 'error')),
    'end': lambda d: End(),
}


def _parse_object(raw: str) -> Dict[str, Any]:
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise _Malformed(f'invalid json: {e}') from e

    if not isinstance(data, dict):
        raise _Malformed(f'frame must be a json object, got {type(data).__name__}')
    return data


def decode_frame(raw: str) -> Decoded:
    """
    Turn one raw SSE data payload into a StreamEvent.

    Never raises: anything malformed comes back as a DecodeFailure carrying the
    raw frame and the reason. Unrecognised `type` tags decode to Unknown.
    """
    try:
        data = _parse_object(raw)
        tag = _require_str(data, 'type')

        build: Optional[Callable[[Mapping[str, Any]], StreamEvent]] = _BUILDERS.get(tag)
        if build is None:
            return Unknown(tag=tag)
        return build(data)
    except _Malformed as e:
        return DecodeFailure(raw=raw, reason=str(e))
