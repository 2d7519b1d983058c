"""
Ordered document collections and their navigation groupings.
"""

from collections import OrderedDict
from typing import Callable, Dict, Generic, Iterable, Iterator, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from blogsmith.content.preprocessor import TextPreprocessor
from blogsmith.models import Document, RenderedDocument

T = TypeVar("T", Document, RenderedDocument)


def _document(item) -> Document:
    return item.document if isinstance(item, RenderedDocument) else item


def sort_documents(items: Iterable[T]) -> List[T]:
    """
    Order documents newest first.

    Documents published at the same instant are ordered by case-folded
    title, then slug, so repeated builds produce the same order.
    """
    items = sorted(items, key=lambda item: _document(item).sort_key)
    return sorted(items, key=lambda item: _document(item).published_at, reverse=True)


class TermGroup(BaseModel):
    """Documents sharing one category or tag."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    slug: str
    documents: List = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.documents)


class DocumentCollection(Generic[T]):
    """Documents in index order with category, tag and year groupings."""

    def __init__(self, items: Iterable[T]) -> None:
        self._items = sort_documents(items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index):
        return self._items[index]

    @property
    def items(self) -> List[T]:
        return list(self._items)

    def latest(self, count: int) -> List[T]:
        return self._items[:count]

    def by_category(self) -> List[TermGroup]:
        return self._group_terms(lambda doc: doc.categories)

    def by_tag(self) -> List[TermGroup]:
        return self._group_terms(lambda doc: doc.tags)

    def by_year(self) -> "OrderedDict[int, List[T]]":
        """Documents grouped by publish year, newest year first."""
        years: "OrderedDict[int, List[T]]" = OrderedDict()
        for item in self._items:
            years.setdefault(_document(item).published_at.year, []).append(item)
        return years

    def _group_terms(self, terms_of: Callable[[Document], List[str]]) -> List[TermGroup]:
        """
        Group documents by term slug.

        Terms that slugify identically ("C++" and "c") share a group named
        after the first spelling seen in index order.
        """
        groups: Dict[str, TermGroup] = {}
        for item in self._items:
            for term in terms_of(_document(item)):
                slug = TextPreprocessor.slugify(term, default="term")
                group = groups.get(slug)
                if group is None:
                    group = groups[slug] = TermGroup(name=term, slug=slug)
                if not any(existing is item for existing in group.documents):
                    group.documents.append(item)
        return sorted(groups.values(), key=lambda group: (group.name.casefold(), group.slug))
