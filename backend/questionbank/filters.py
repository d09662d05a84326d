from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Sequence


def filter_questions(
	questions: Iterable[Any],
	*,
	search: Optional[str] = None,
	subject: Optional[str] = None,
	author: Optional[str] = None,
	tags: Optional[Sequence[str]] = None,
) -> List[Any]:
	"""Apply the question list filters.

	``search`` is a case-insensitive substring of the statement; ``subject`` and
	``author`` must match exactly ("all" or empty disables them); every tag in
	``tags`` must be present. Questions without a statement are always skipped.
	"""
	needle = (search or "").lower()
	wanted_tags = [t for t in (tags or []) if t]
	result = []
	for q in questions:
		if not q.statement:
			continue
		if needle and needle not in q.statement.lower():
			continue
		if subject and subject != "all" and q.subject != subject:
			continue
		if author and author != "all" and q.author_name != author:
			continue
		if wanted_tags:
			q_tags = q.tags or []
			if not all(t in q_tags for t in wanted_tags):
				continue
		result.append(q)
	return result


def facets(questions: Iterable[Any]) -> Dict[str, List[str]]:
	subjects, authors, tags = set(), set(), set()
	for q in questions:
		if q.subject:
			subjects.add(q.subject)
		if q.author_name:
			authors.add(q.author_name)
		tags.update(t for t in (q.tags or []) if t)
	return {"subjects": sorted(subjects), "authors": sorted(authors), "tags": sorted(tags)}
