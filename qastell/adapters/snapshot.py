"""Immutable page snapshot and the HTML collector that builds it.

Every adapter reduces its host handle to the same four raw inputs (URL, HTML,
response headers, cookies); ``build_snapshot`` turns those into the frozen
structure that rules evaluate.
"""
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from html.parser import HTMLParser
from types import MappingProxyType
from typing import Any, Mapping
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input", "link",
    "meta", "param", "source", "track", "wbr",
})

_EMPTY: Mapping[str, str] = MappingProxyType({})


@dataclass(frozen=True)
class ElementInfo:
    """A queryable descriptor of one DOM element."""

    tag: str
    attributes: Mapping[str, str]
    selector: str
    parent_tags: tuple[str, ...] = ()

    def attr(self, name: str, default: str | None = None) -> str | None:
        return self.attributes.get(name, default)

    def has_attr(self, name: str) -> bool:
        return name in self.attributes

    @property
    def start_tag(self) -> str:
        """Re-serialized opening tag, used as violation context."""
        parts = [self.tag]
        for name, value in self.attributes.items():
            parts.append(f'{name}="{value}"' if value else name)
        text = f"<{' '.join(parts)}>"
        return text[:200] + "..." if len(text) > 200 else text


@dataclass(frozen=True)
class ScriptInfo:
    """An inline or external <script> element."""

    selector: str
    src: str | None
    content: str
    integrity: str | None
    crossorigin: str | None
    script_type: str | None = None

    @property
    def is_external(self) -> bool:
        return bool(self.src)


@dataclass(frozen=True)
class FormInfo:
    """Information about an HTML form."""

    selector: str
    action: str
    method: str
    inputs: tuple[Mapping[str, str], ...]
    autocomplete: str | None = None

    @property
    def has_password_field(self) -> bool:
        return any(inp.get("type", "").lower() == "password" for inp in self.inputs)

    def input_names(self) -> list[str]:
        return [inp["name"] for inp in self.inputs if inp.get("name")]


@dataclass(frozen=True)
class CookieInfo:
    """Information about a browser cookie.

    ``flags_known`` is False when the host only exposes ``document.cookie``,
    which carries names and values but no Secure/SameSite attributes.
    """

    name: str
    value: str
    domain: str = ""
    path: str = "/"
    secure: bool = False
    http_only: bool = False
    same_site: str | None = None
    expires: float | None = None
    flags_known: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "value": f"{self.value[:10]}..." if len(self.value) > 10 else self.value,
            "domain": self.domain,
            "path": self.path,
            "secure": self.secure,
            "http_only": self.http_only,
            "same_site": self.same_site,
            "expires": self.expires,
        }


@dataclass(frozen=True)
class Snapshot:
    """Immutable capture of one page state."""

    url: str
    html: str
    elements: tuple[ElementInfo, ...] = ()
    scripts: tuple[ScriptInfo, ...] = ()
    forms: tuple[FormInfo, ...] = ()
    cookies: tuple[CookieInfo, ...] = ()
    headers: Mapping[str, str] = field(default_factory=lambda: _EMPTY)
    headers_available: bool = False
    framework: str = "unknown"
    captured_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_https(self) -> bool:
        return urlsplit(self.url).scheme == "https"

    @property
    def host(self) -> str:
        return (urlsplit(self.url).hostname or "").lower()

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def find(self, *tags: str) -> list[ElementInfo]:
        wanted = {t.lower() for t in tags}
        return [el for el in self.elements if el.tag in wanted]


class _DomCollector(HTMLParser):
    """Walk an HTML document and record element descriptors with selectors."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.elements: list[ElementInfo] = []
        self.scripts: list[ScriptInfo] = []
        self.forms: list[FormInfo] = []
        # (tag, selector, per-tag child counters)
        self._stack: list[tuple[str, str, dict[str, int]]] = [("", "", {})]
        self._script: tuple[str, dict[str, str]] | None = None
        self._script_chunks: list[str] = []
        self._form: tuple[str, dict[str, str]] | None = None
        self._form_inputs: list[Mapping[str, str]] = []

    def _selector_for(self, tag: str, attrs: dict[str, str]) -> str:
        parent_selector, counters = self._stack[-1][1], self._stack[-1][2]
        counters[tag] = counters.get(tag, 0) + 1
        element_id = attrs.get("id")
        if element_id and " " not in element_id:
            return f"{tag}#{element_id}"
        own = f"{tag}:nth-of-type({counters[tag]})"
        return f"{parent_selector} > {own}" if parent_selector else own

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attr_dict = {name: value or "" for name, value in attrs}
        selector = self._selector_for(tag, attr_dict)
        parents = tuple(entry[0] for entry in self._stack[1:])
        self.elements.append(
            ElementInfo(
                tag=tag,
                attributes=MappingProxyType(attr_dict),
                selector=selector,
                parent_tags=parents,
            )
        )

        if tag == "script":
            self._script = (selector, attr_dict)
            self._script_chunks = []
        elif tag == "form":
            self._form = (selector, attr_dict)
            self._form_inputs = []
        elif tag in ("input", "textarea", "select") and self._form is not None:
            self._form_inputs.append(MappingProxyType({
                "tag": tag,
                "type": attr_dict.get("type", "text" if tag == "input" else tag).lower(),
                "name": attr_dict.get("name", ""),
                "autocomplete": attr_dict.get("autocomplete", ""),
            }))

        if tag not in VOID_ELEMENTS:
            self._stack.append((tag, selector, {}))

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.handle_starttag(tag, attrs)
        if tag not in VOID_ELEMENTS:
            self.handle_endtag(tag)

    def handle_endtag(self, tag: str) -> None:
        if tag == "script" and self._script is not None:
            self._finish_script()
        elif tag == "form" and self._form is not None:
            self._finish_form()

        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth][0] == tag:
                del self._stack[depth:]
                break

    def handle_data(self, data: str) -> None:
        if self._script is not None:
            self._script_chunks.append(data)

    def close(self) -> None:
        super().close()
        if self._script is not None:
            self._finish_script()
        if self._form is not None:
            self._finish_form()

    def _finish_script(self) -> None:
        selector, attrs = self._script  # type: ignore[misc]
        self.scripts.append(
            ScriptInfo(
                selector=selector,
                src=attrs.get("src") or None,
                content="".join(self._script_chunks).strip(),
                integrity=attrs.get("integrity") or None,
                crossorigin=attrs.get("crossorigin"),
                script_type=attrs.get("type"),
            )
        )
        self._script = None
        self._script_chunks = []

    def _finish_form(self) -> None:
        selector, attrs = self._form  # type: ignore[misc]
        self.forms.append(
            FormInfo(
                selector=selector,
                action=attrs.get("action", ""),
                method=(attrs.get("method") or "GET").upper(),
                inputs=tuple(self._form_inputs),
                autocomplete=attrs.get("autocomplete"),
            )
        )
        self._form = None
        self._form_inputs = []


def normalize_cookie(raw: Mapping[str, Any]) -> CookieInfo:
    """Normalize a cookie dict from Playwright, Puppeteer or Selenium."""
    same_site = raw.get("sameSite", raw.get("same_site"))
    expires = raw.get("expires", raw.get("expiry"))
    return CookieInfo(
        name=str(raw.get("name", "")),
        value=str(raw.get("value", "")),
        domain=str(raw.get("domain", "")),
        path=str(raw.get("path", "/")),
        secure=bool(raw.get("secure", False)),
        http_only=bool(raw.get("httpOnly", raw.get("http_only", False))),
        same_site=str(same_site) if same_site else None,
        expires=float(expires) if isinstance(expires, int | float) and expires >= 0 else None,
    )


def parse_document_cookie(cookie_string: str) -> list[CookieInfo]:
    """Parse a ``document.cookie`` string.

    Cookies visible to script are by definition not HttpOnly; their other
    flags are not exposed.
    """
    cookies = []
    for pair in cookie_string.split(";"):
        pair = pair.strip()
        if not pair:
            continue
        name, _, value = pair.partition("=")
        cookies.append(
            CookieInfo(name=name.strip(), value=value.strip(), http_only=False, flags_known=False)
        )
    return cookies


def build_snapshot(
    url: str,
    html: str,
    headers: Mapping[str, str] | None = None,
    cookies: list[CookieInfo] | None = None,
    framework: str = "unknown",
) -> Snapshot:
    """Parse raw page state into an immutable Snapshot.

    Args:
        url: The current page URL
        html: Serialized DOM
        headers: Main document response headers, or None when the host cannot
            retrieve them
        cookies: Normalized cookies
        framework: Name of the adapter that captured the page

    Returns:
        Frozen Snapshot
    """
    collector = _DomCollector()
    collector.feed(html or "")
    collector.close()

    normalized_headers = (
        MappingProxyType({str(k).lower(): str(v) for k, v in headers.items()})
        if headers is not None
        else _EMPTY
    )

    logger.debug(
        "Built snapshot for %s: %d elements, %d scripts, %d forms, %d cookies",
        url,
        len(collector.elements),
        len(collector.scripts),
        len(collector.forms),
        len(cookies or []),
    )

    return Snapshot(
        url=url,
        html=html or "",
        elements=tuple(collector.elements),
        scripts=tuple(collector.scripts),
        forms=tuple(collector.forms),
        cookies=tuple(cookies or ()),
        headers=normalized_headers,
        headers_available=headers is not None,
        framework=framework,
    )
