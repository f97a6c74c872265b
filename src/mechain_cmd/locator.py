"""Resolve ``mechain://bucket/object`` style URLs into resource names."""

from __future__ import annotations

from mechain_cmd.errors import MalformedResourceError
from mechain_cmd.types import ResourceName

URL_SCHEME = "mechain://"
_SEPARATOR = "/"


def strip_scheme(url: str) -> str:
    if url.startswith(URL_SCHEME):
        return url[len(URL_SCHEME) :]
    return url


def locate(url: str, *, require_member: bool = False) -> ResourceName:
    """Split ``url`` on the first separator into container and member.

    Without a separator the container itself is the target (``member`` is
    ``None``), unless ``require_member`` is set.
    """
    path = strip_scheme(url.strip())
    container, sep, member = path.partition(_SEPARATOR)
    if not container:
        raise MalformedResourceError(f"url not right, bucket name is empty: {url!r}")
    if not sep:
        if require_member:
            raise MalformedResourceError(
                f"url not right, can not parse bucket name and object name: {url!r}"
            )
        return ResourceName(container=container)
    if require_member and not member:
        raise MalformedResourceError(f"url not right, object name is empty: {url!r}")
    return ResourceName(container=container, member=member)


def parse_bucket_and_object(url: str) -> tuple[str, str]:
    name = locate(url, require_member=True)
    return name.container, name.member or ""


def parse_bucket_and_prefix(url: str) -> tuple[str, str]:
    name = locate(url)
    return name.container, name.member or ""


def parse_bucket(url: str) -> str:
    return locate(url).container


def parse_group_name(value: str) -> str:
    group_name = value.strip()
    if not group_name:
        raise MalformedResourceError("group name must not be empty")
    if _SEPARATOR in group_name:
        raise MalformedResourceError(f"group name must not contain '/': {value!r}")
    return group_name
