"""Turn a git remote URL into a browser link for a commit."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse

_SCP_LIKE_RE = re.compile(r"^[\w.-]+@([^:/]+):(.+)$")


def _project_path(path: str) -> str:
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    return path


def commit_web_url(remote_url: Optional[str], commit_id: str) -> Optional[str]:
    """Return the GitLab-style ``/-/commit/<id>`` page for ``commit_id``.

    Handles ``git@host:group/project.git``, ``ssh://git@host/group/project.git``
    and ``http(s)://host/group/project.git``. Returns None for anything else.
    """
    if not remote_url:
        return None
    remote_url = remote_url.strip()

    match = _SCP_LIKE_RE.match(remote_url)
    if match and "://" not in remote_url:
        host, path = match.groups()
        path = _project_path(path)
        return f"https://{host}/{path}/-/commit/{commit_id}" if path else None

    parsed = urlparse(remote_url)
    if not parsed.hostname:
        return None
    path = _project_path(parsed.path)
    if not path:
        return None

    if parsed.scheme in ("http", "https"):
        host = parsed.hostname
        if parsed.port:
            host = f"{host}:{parsed.port}"
        return f"{parsed.scheme}://{host}/{path}/-/commit/{commit_id}"
    if parsed.scheme in ("ssh", "git+ssh"):
        # SSH ports do not carry over to the web UI
        return f"https://{parsed.hostname}/{path}/-/commit/{commit_id}"
    return None
