"""
Statement markup model.

A statement is a flat string in a narrow HTML dialect: plain text, emphasis
tags (strong/em/u), line breaks (<br>) and image elements of the form

	<img src="..." alt="..." style="width: 300px; height: 200px;" data-id="img-..." />

Everything here is a pure function over that string. Edits work on a token
list whose raw pieces concatenate back to the input, so content outside the
touched element is preserved byte for byte.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from html import escape, unescape
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict


DEFAULT_WIDTH = 300
DEFAULT_HEIGHT = 200
MIN_IMAGE_SIZE = 1
DEFAULT_ALT = "Imagem"

TEXT = "text"
EMPHASIS = "emphasis"
BREAK = "break"
IMAGE = "image"
OTHER = "other"

# formatting kind -> wrapper tag
EMPHASIS_TAGS: Dict[str, str] = {"bold": "strong", "italic": "em", "underline": "u"}
_EMPHASIS_NAMES = {"strong", "em", "u", "b", "i"}

_ATTR = r"""[^\s"'>/=]+(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'=<>`]+))?"""
_TAG_RE = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9]*)((?:\s+" + _ATTR + r")*)\s*/?\s*>")
_ATTR_RE = re.compile(r"""([^\s"'>/=]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?""")
_TAG_END_RE = re.compile(r"\s*/?\s*>$")
_WIDTH_RE = re.compile(r"(?<![\w-])(width\s*:\s*)(\d+)(px)", re.IGNORECASE)
_HEIGHT_RE = re.compile(r"(?<![\w-])(height\s*:\s*)(\d+)(px)", re.IGNORECASE)


class ImageDescriptor(BaseModel):
	"""One image element of a statement, in document order."""
	model_config = ConfigDict(frozen=True)

	id: str = ""
	src: str
	width: int = DEFAULT_WIDTH
	height: int = DEFAULT_HEIGHT


@dataclass
class Token:
	kind: str
	raw: str
	name: str = ""
	closing: bool = False
	attrs: Dict[str, str] = field(default_factory=dict)


def _parse_attrs(source: str) -> Dict[str, str]:
	attrs: Dict[str, str] = {}
	for match in _ATTR_RE.finditer(source):
		name = match.group(1).lower()
		value = next((g for g in match.group(2, 3, 4) if g is not None), "")
		attrs.setdefault(name, unescape(value))
	return attrs


def _classify(match: re.Match) -> Token:
	raw = match.group(0)
	closing = bool(match.group(1))
	name = match.group(2).lower()
	if name == "img" and not closing:
		return Token(IMAGE, raw, name, False, _parse_attrs(match.group(3) or ""))
	if name == "br":
		return Token(BREAK, raw, name, closing)
	if name in _EMPHASIS_NAMES:
		return Token(EMPHASIS, raw, name, closing)
	return Token(OTHER, raw, name, closing)


def tokenize(markup: str) -> List[Token]:
	tokens: List[Token] = []
	pos = 0
	for match in _TAG_RE.finditer(markup):
		if match.start() > pos:
			tokens.append(Token(TEXT, markup[pos:match.start()]))
		tokens.append(_classify(match))
		pos = match.end()
	if pos < len(markup):
		tokens.append(Token(TEXT, markup[pos:]))
	return tokens


def serialize(tokens: List[Token]) -> str:
	return "".join(t.raw for t in tokens)


def _dimension(style: str, pattern: re.Pattern, default: int) -> int:
	match = pattern.search(style)
	if not match:
		return default
	value = int(match.group(2))
	return value if value > 0 else default


def _descriptor(token: Token) -> ImageDescriptor:
	style = token.attrs.get("style", "")
	return ImageDescriptor(
		id=token.attrs.get("data-id", ""),
		src=token.attrs.get("src", ""),
		width=_dimension(style, _WIDTH_RE, DEFAULT_WIDTH),
		height=_dimension(style, _HEIGHT_RE, DEFAULT_HEIGHT),
	)


def _image_position(tokens: List[Token], index: int) -> Optional[int]:
	if index < 0:
		return None
	seen = 0
	for position, token in enumerate(tokens):
		if token.kind != IMAGE:
			continue
		if seen == index:
			return position
		seen += 1
	return None


def extract_images(markup: str) -> List[ImageDescriptor]:
	"""Parse every image element of ``markup`` in document order.

	Missing or unparsable sizes fall back to 300x200. The source is returned
	as written in the element (entity-decoded).
	"""
	return [_descriptor(t) for t in tokenize(markup) if t.kind == IMAGE]


def count_images(markup: str) -> int:
	return sum(1 for t in tokenize(markup) if t.kind == IMAGE)


def _set_dimension(style: str, pattern: re.Pattern, prop: str, value: int) -> str:
	if pattern.search(style):
		return pattern.sub(lambda m: f"{m.group(1)}{value}{m.group(3)}", style, count=1)
	style = style.rstrip()
	if style and not style.endswith(";"):
		style += ";"
	return f"{style} {prop}: {value}px;".lstrip()


def _resized_style(style: str, width: int, height: int) -> str:
	style = _set_dimension(style, _WIDTH_RE, "width", width)
	return _set_dimension(style, _HEIGHT_RE, "height", height)


def _resize_tag(raw: str, width: int, height: int) -> str:
	# Only the first real style attribute is edited, never text inside other values
	match = _TAG_RE.match(raw)
	if match is not None and match.group(3):
		offset = match.start(3)
		for attr in _ATTR_RE.finditer(match.group(3)):
			if attr.group(1).lower() != "style":
				continue
			quoted = 2 if attr.group(2) is not None else 3 if attr.group(3) is not None else None
			if quoted is None:
				style = _resized_style(attr.group(4) or "", width, height)
				start, end = offset + attr.start(), offset + attr.end()
				return f'{raw[:start]}style="{style}"{raw[end:]}'
			start, end = offset + attr.start(quoted), offset + attr.end(quoted)
			return raw[:start] + _resized_style(attr.group(quoted), width, height) + raw[end:]
	end = _TAG_END_RE.search(raw)
	cut = end.start() if end else len(raw)
	style = f"width: {width}px; height: {height}px;"
	return f'{raw[:cut]} style="{style}"{raw[cut:]}'


def set_image_size(markup: str, index: int, width: int, height: int) -> str:
	"""Rewrite the size of the image at ``index``; stale indices are a no-op."""
	tokens = tokenize(markup)
	position = _image_position(tokens, index)
	if position is None:
		return markup
	width = max(int(width), MIN_IMAGE_SIZE)
	height = max(int(height), MIN_IMAGE_SIZE)
	token = tokens[position]
	current = _descriptor(token)
	if (current.width, current.height) == (width, height):
		return markup
	token.raw = _resize_tag(token.raw, width, height)
	return serialize(tokens)


def delete_image(markup: str, index: int) -> str:
	"""Remove the image at ``index`` and at most one <br> on each side of it."""
	tokens = tokenize(markup)
	position = _image_position(tokens, index)
	if position is None:
		return markup
	start, end = position, position + 1
	if start > 0 and tokens[start - 1].kind == BREAK:
		start -= 1
	if end < len(tokens) and tokens[end].kind == BREAK:
		end += 1
	del tokens[start:end]
	return serialize(tokens)


def strip_images(markup: str) -> str:
	return "".join("\n" if t.kind == BREAK else t.raw for t in tokenize(markup) if t.kind != IMAGE)


def image_tag(
	src: str,
	image_id: str,
	alt: str = DEFAULT_ALT,
	width: int = DEFAULT_WIDTH,
	height: int = DEFAULT_HEIGHT,
) -> str:
	return (
		f'<img src="{escape(src)}" alt="{escape(alt)}" '
		f'style="width: {width}px; height: {height}px;" data-id="{escape(image_id)}" />'
	)


def wrap(kind: str, text: str) -> str:
	tag = EMPHASIS_TAGS.get(kind)
	if tag is None:
		raise ValueError(f"unknown formatting kind: {kind!r}")
	return f"<{tag}>{text}</{tag}>"


def text_to_markup(text: str) -> str:
	return text.replace("\r\n", "\n").replace("\n", "<br>")


def _plain_units(markup: str) -> List[Tuple[Optional[str], str]]:
	# (character in the plain view or None for images, raw markup it came from)
	units: List[Tuple[Optional[str], str]] = []
	for token in tokenize(markup):
		if token.kind == IMAGE:
			units.append((None, token.raw))
		elif token.kind == BREAK:
			units.append(("\n", token.raw))
		else:
			units.extend((ch, ch) for ch in token.raw)
	return units


def reconcile_plain_text(markup: str, new_plain: str) -> str:
	"""Apply an edit of the plain-text view back onto ``markup``.

	Only the span that differs between the current view and ``new_plain`` is
	rewritten; image elements keep their place. Inserted text sits right
	before the first character that followed the edit point, so images that
	preceded it stay ahead of the new text.
	"""
	units = _plain_units(markup)
	old_plain = "".join(ch for ch, _ in units if ch is not None)
	if old_plain == new_plain:
		return markup

	limit = min(len(old_plain), len(new_plain))
	prefix = 0
	while prefix < limit and old_plain[prefix] == new_plain[prefix]:
		prefix += 1
	suffix = 0
	while suffix < limit - prefix and old_plain[-1 - suffix] == new_plain[-1 - suffix]:
		suffix += 1
	removed_end = len(old_plain) - suffix
	inserted = text_to_markup(new_plain[prefix:len(new_plain) - suffix])

	out: List[str] = []
	plain_index = 0
	placed = False
	for ch, raw in units:
		if ch is None:
			out.append(raw)
			continue
		if plain_index == prefix and not placed:
			out.append(inserted)
			placed = True
		if not (prefix <= plain_index < removed_end):
			out.append(raw)
		plain_index += 1
	if not placed:
		out.append(inserted)
	return "".join(out)
