import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

POSTIER_EXTENSION = ".postier"

# Go's zero time.Time, written by older builds for "unset"
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_FRACTION = re.compile(r"\.(\d+)")

BODY_CONTENT_TYPES = {
    "json": "application/json",
    "text": "text/plain",
    "xml": "application/xml",
    "sparql": "application/sparql-query",
    "none": None,
}


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return _ZERO_TIME.isoformat().replace("+00:00", "Z")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp. Empty values and the zero time mean unset."""
    if not value:
        return None
    # fromisoformat wants exactly six fraction digits on older interpreters
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), str(value).strip())
    text = text.replace("Z", "+00:00")
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    if dt.year <= 1:
        return None
    return dt


def _str_map(data: Any) -> Dict[str, str]:
    if not isinstance(data, dict):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in data.items()}


def apply_body_type(headers: Dict[str, str], body_type: str) -> Dict[str, str]:
    """Return a copy of headers with the Content-Type matching body_type."""
    content_type = BODY_CONTENT_TYPES.get(body_type)
    out = dict(headers)
    if content_type:
        for key in [k for k in out if k.lower() == "content-type"]:
            del out[key]
        out["Content-Type"] = content_type
    return out


@dataclass
class RequestDescriptor:
    """Represents an HTTP request to be made."""
    method: str = "GET"
    url: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    query: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequestDescriptor":
        return cls(
            method=str(data.get("method") or "GET"),
            url=str(data.get("url") or ""),
            headers=_str_map(data.get("headers")),
            body=str(data.get("body") or ""),
            query=_str_map(data.get("query")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"method": self.method, "url": self.url, "headers": dict(self.headers),
                "body": self.body, "query": dict(self.query)}


@dataclass
class Cookie:
    """A single Set-Cookie response header."""
    name: str
    value: str = ""
    domain: str = ""
    path: str = ""
    expires: Optional[datetime] = None
    secure: bool = False
    http_only: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "expires": format_timestamp(self.expires),
            "secure": self.secure,
            "httpOnly": self.http_only,
        }


@dataclass
class ResponseDescriptor:
    """Represents the response from an HTTP request. duration is in milliseconds."""
    status_code: int
    status: str
    headers: Dict[str, List[str]] = field(default_factory=dict)
    cookies: List[Cookie] = field(default_factory=list)
    body: str = ""
    size: int = 0
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "status": self.status,
            "headers": {k: list(v) for k, v in self.headers.items()},
            "cookies": [c.to_dict() for c in self.cookies],
            "body": self.body,
            "size": self.size,
            "duration": self.duration,
        }


@dataclass
class FileSystemEntry:
    name: str
    path: str
    is_dir: bool = False
    size: int = 0
    modified: int = 0  # unix seconds

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "path": self.path, "isDir": self.is_dir,
                "size": self.size, "modified": self.modified}


@dataclass
class DirectoryTree:
    entry: FileSystemEntry
    children: List["DirectoryTree"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"entry": self.entry.to_dict()}
        if self.children:
            out["children"] = [c.to_dict() for c in self.children]
        return out

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()

    def find(self, path: str) -> Optional["DirectoryTree"]:
        for node in self.walk():
            if node.entry.path == path:
                return node
        return None


@dataclass
class PostierRequest:
    """A saved request, stored as a .postier file."""
    name: str = ""
    description: str = ""
    method: str = "GET"
    url: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    query: Dict[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PostierRequest":
        return cls(
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            method=str(data.get("method") or "GET"),
            url=str(data.get("url") or ""),
            headers=_str_map(data.get("headers")),
            body=str(data.get("body") or ""),
            query=_str_map(data.get("query")),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "method": self.method,
            "url": self.url,
            "headers": dict(self.headers),
            "body": self.body,
            "query": dict(self.query),
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    def to_descriptor(self) -> RequestDescriptor:
        return RequestDescriptor(method=self.method, url=self.url, headers=dict(self.headers),
                                 body=self.body, query=dict(self.query))

    def update_from(self, request: RequestDescriptor):
        self.method = request.method
        self.url = request.url
        self.headers = dict(request.headers)
        self.body = request.body
        self.query = dict(request.query)


@dataclass
class Collection:
    """A root folder of saved requests shown in the sidebar."""
    id: str
    name: str
    path: str
    tree: Optional[DirectoryTree] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Collection":
        return cls(id=str(data["id"]), name=str(data.get("name") or ""), path=str(data["path"]))

    def to_dict(self) -> Dict[str, Any]:
        # trees are rebuilt from disk, never persisted
        return {"id": self.id, "name": self.name, "path": self.path}
