# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Kurral Engine.
#
# Kurral Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from urllib.parse import urlparse


def get_hostname(url: str) -> str | None:
    """Lower-cased host without `www.` and port, or None if unparseable."""
    if not url or not isinstance(url, str):
        return None
    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    try:
        host = (urlparse(candidate).netloc or "").lower().strip()
    except ValueError:
        return None
    host = host.split("@")[-1].split(":")[0].strip(".")
    if host.startswith("www."):
        host = host[4:]
    if not host or "." not in host:
        return None
    return host


def host_matches(host: str, domain: str) -> bool:
    """True if `host` is `domain` or one of its subdomains."""
    return host == domain or host.endswith("." + domain)
