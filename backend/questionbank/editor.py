from __future__ import annotations
import base64
import logging
import uuid
from typing import Callable, List, Optional

from pydantic import BaseModel

from . import markup as mk
from .markup import ImageDescriptor


logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
FORMAT_KINDS = tuple(mk.EMPHASIS_TAGS)


class ImageValidationError(ValueError):
	"""Rejected image input (bad file type, oversized file, empty URL)."""


class EditorState(BaseModel):
	markup: str
	plain_text: str
	images: List[ImageDescriptor]
	selected_index: Optional[int] = None


def new_image_id() -> str:
	return f"img-{uuid.uuid4().hex[:12]}"


class StatementEditor:
	"""
	Owner of one question statement.

	The markup string is the single source of truth. The image list is derived
	from it lazily and dropped on every write; the plain-text view is derived
	on every read.

	With ``preserve_images=False`` a plain-text edit (or a formatting command,
	which edits the plain-text view) replaces the whole markup, dropping any
	images. With ``preserve_images=True`` only the edited span of text is
	rewritten and images stay where they are.
	"""

	def __init__(
		self,
		markup: str = "",
		*,
		preserve_images: bool = False,
		max_image_bytes: int = MAX_IMAGE_BYTES,
		id_factory: Callable[[], str] = new_image_id,
	) -> None:
		self._markup = markup or ""
		self._images: Optional[List[ImageDescriptor]] = None
		self.selected_index: Optional[int] = None
		self.preserve_images = preserve_images
		self.max_image_bytes = max_image_bytes
		self._id_factory = id_factory

	# ------------------------------------------------------------------
	# Derived views
	# ------------------------------------------------------------------

	@property
	def markup(self) -> str:
		return self._markup

	@markup.setter
	def markup(self, value: str) -> None:
		self._write(value or "")

	@property
	def images(self) -> List[ImageDescriptor]:
		if self._images is None:
			self._images = mk.extract_images(self._markup)
		return list(self._images)

	@property
	def plain_text(self) -> str:
		return mk.strip_images(self._markup)

	@property
	def is_empty(self) -> bool:
		return not self._markup.strip()

	def snapshot(self) -> EditorState:
		return EditorState(
			markup=self._markup,
			plain_text=self.plain_text,
			images=self.images,
			selected_index=self.selected_index,
		)

	def _write(self, value: str, images: Optional[List[ImageDescriptor]] = None) -> None:
		if value == self._markup and images is None:
			return
		self._markup = value
		self._images = images
		if self.selected_index is not None and self.selected_index >= len(self.images):
			self.selected_index = None

	# ------------------------------------------------------------------
	# Text
	# ------------------------------------------------------------------

	def on_statement_text_change(self, new_text: str) -> None:
		if self.preserve_images:
			self._write(mk.reconcile_plain_text(self._markup, new_text))
		else:
			self._write(new_text)

	def apply_formatting(self, kind: str, selection_start: int, selection_end: int) -> bool:
		"""Wrap a range of the plain-text view in emphasis tags.

		Returns False when the selection is empty.
		"""
		if kind not in mk.EMPHASIS_TAGS:
			raise ValueError(f"kind must be one of {list(FORMAT_KINDS)}")
		plain = self.plain_text
		start = max(0, min(selection_start, len(plain)))
		end = max(0, min(selection_end, len(plain)))
		selected = plain[start:end]
		if not selected:
			return False
		formatted = plain[:start] + mk.wrap(kind, selected) + plain[end:]
		self.on_statement_text_change(formatted)
		return True

	# ------------------------------------------------------------------
	# Images
	# ------------------------------------------------------------------

	def insert_image(self, src: str, alt: str = mk.DEFAULT_ALT) -> ImageDescriptor:
		image_id = self._id_factory()
		existing = {image.id for image in self.images}
		while image_id in existing:
			image_id = self._id_factory()
		tag = mk.image_tag(src, image_id, alt)
		self._write(f"{self._markup}<br>{tag}<br>")
		return self.images[-1]

	def insert_image_url(self, url: str) -> ImageDescriptor:
		url = (url or "").strip()
		if not url:
			raise ImageValidationError("image URL is required")
		return self.insert_image(url)

	def insert_image_file(self, mime_type: str, byte_size: int, data: bytes, filename: str = "") -> ImageDescriptor:
		mime_type = (mime_type or "").strip().lower()
		if not mime_type.startswith("image/"):
			logger.info("Rejected upload %r with type %r", filename, mime_type)
			raise ImageValidationError("only image files are accepted")
		if byte_size > self.max_image_bytes:
			logger.info("Rejected upload %r of %d bytes", filename, byte_size)
			limit_mb = self.max_image_bytes / (1024 * 1024)
			raise ImageValidationError(f"image must be at most {limit_mb:g}MB")
		payload = base64.b64encode(data).decode("ascii")
		return self.insert_image(f"data:{mime_type};base64,{payload}", alt=filename or mk.DEFAULT_ALT)

	def resize_image(self, index: int, delta_width: int, delta_height: int) -> Optional[ImageDescriptor]:
		images = self.images
		if not 0 <= index < len(images):
			logger.debug("Ignoring resize of stale image index %s", index)
			return None
		current = images[index]
		width = max(current.width + int(delta_width), mk.MIN_IMAGE_SIZE)
		height = max(current.height + int(delta_height), mk.MIN_IMAGE_SIZE)
		updated = current.model_copy(update={"width": width, "height": height})
		images[index] = updated
		self._write(mk.set_image_size(self._markup, index, width, height), images)
		return updated

	def delete_image(self, index: int) -> bool:
		if not 0 <= index < len(self.images):
			logger.debug("Ignoring delete of stale image index %s", index)
			return False
		self._write(mk.delete_image(self._markup, index))
		self.selected_index = None
		return True

	# ------------------------------------------------------------------
	# Selection
	# ------------------------------------------------------------------

	def select_image(self, index: Optional[int]) -> Optional[int]:
		if index is not None and 0 <= index < len(self.images):
			self.selected_index = index
		else:
			self.selected_index = None
		return self.selected_index

	def click(self, inside_index: Optional[int] = None) -> Optional[int]:
		"""A click inside image ``inside_index``, or outside all images when None."""
		return self.select_image(inside_index)
