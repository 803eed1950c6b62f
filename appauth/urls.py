from __future__ import annotations

import urllib.parse


def matches_redirect_target(uri: str, redirect_uri: str) -> bool:
    parsed = urllib.parse.urlsplit(uri)
    expected = urllib.parse.urlsplit(redirect_uri)
    if parsed.scheme.lower() != expected.scheme.lower():
        return False
    if parsed.netloc.lower() != expected.netloc.lower():
        return False
    return parsed.path == expected.path


def parse_redirect_params(uri: str) -> dict[str, str]:
    parsed = urllib.parse.urlsplit(uri)
    params = urllib.parse.parse_qs(parsed.query, keep_blank_values=True)
    return {key: values[0] for key, values in params.items() if values}
