from __future__ import annotations
import csv
import io
from datetime import date, datetime
from typing import Any, Iterable, List


CSV_HEADERS: List[str] = [
	"ID",
	"Teacher",
	"Subject",
	"Tags",
	"Statement",
	"Option A",
	"Option B",
	"Option C",
	"Option D",
	"Option E",
	"Correct Answer",
	"Created At",
]
OPTION_COUNT = 5


def _created(value: Any) -> str:
	if not value:
		return ""
	if isinstance(value, str):
		try:
			value = datetime.fromisoformat(value.replace("Z", "+00:00"))
		except ValueError:
			return ""
	return value.strftime("%d/%m/%Y")


def question_row(q: Any) -> List[str]:
	options = list(q.options or [])
	options += [""] * (OPTION_COUNT - len(options))
	return [
		str(q.id),
		q.author_name or "",
		q.subject or "",
		"; ".join(q.tags or []),
		q.statement or "",
		*[o or "" for o in options[:OPTION_COUNT]],
		chr(65 + (q.correct_option or 0)),
		_created(q.created_at),
	]


def questions_to_csv(questions: Iterable[Any]) -> str:
	"""Render questions as a quoted CSV document prefixed with a UTF-8 BOM."""
	buf = io.StringIO()
	writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
	writer.writerow(CSV_HEADERS)
	for q in questions:
		writer.writerow(question_row(q))
	# no trailing newline after the last row
	return "\ufeff" + buf.getvalue().rstrip("\n")


def export_filename(today: date | None = None) -> str:
	today = today or date.today()
	return f"questions_{today.isoformat()}.csv"
