"""
Render tree for mirrorboard.

Modules build Element trees from get_dom(). The screen keeps the mounted tree
for every region and module container; to_html() is the structural
serialization used to decide whether a module needs an update.
"""

import html
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

VOID_TAGS = {"br", "hr", "img", "input", "link", "meta"}


@dataclass(eq=False)
class Element:
    """
    A node of the render tree.

    Children are owned: appending an element detaches it from its previous
    parent first.
    """

    tag: str = "div"
    class_name: str = ""
    id: str = ""
    text: str = ""
    attrs: Dict[str, str] = field(default_factory=dict)
    style: Dict[str, str] = field(default_factory=dict)
    children: List["Element"] = field(default_factory=list)
    parent: Optional["Element"] = field(default=None, repr=False)

    def __post_init__(self):
        for child in self.children:
            child.parent = self

    # Tree edits

    def append(self, child: "Element") -> "Element":
        child.detach()
        child.parent = self
        self.children.append(child)
        return child

    def remove(self, child: "Element") -> None:
        self.children.remove(child)
        child.parent = None

    def detach(self) -> None:
        if self.parent is not None:
            self.parent.remove(self)

    def clear(self) -> None:
        """Drop all children and text."""
        for child in self.children:
            child.parent = None
        self.children = []
        self.text = ""

    # Classes

    @property
    def classes(self) -> List[str]:
        return self.class_name.split()

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def add_class(self, name: str) -> None:
        if not self.has_class(name):
            self.class_name = " ".join(self.classes + [name])

    def remove_class(self, name: str) -> None:
        self.class_name = " ".join(c for c in self.classes if c != name)

    # Queries

    def iter(self) -> Iterator["Element"]:
        """Depth-first walk starting with this element."""
        yield self
        for child in self.children:
            yield from child.iter()

    def find_by_class(self, name: str) -> List["Element"]:
        return [el for el in self.iter() if el.has_class(name)]

    def find_by_id(self, element_id: str) -> Optional["Element"]:
        for el in self.iter():
            if el.id == element_id:
                return el
        return None

    # Serialization

    def _open_tag(self) -> str:
        parts = [self.tag]
        if self.id:
            parts.append(f'id="{html.escape(self.id)}"')
        if self.class_name:
            parts.append(f'class="{html.escape(self.class_name)}"')
        for key, value in self.attrs.items():
            parts.append(f'{key}="{html.escape(str(value))}"')
        if self.style:
            css = "; ".join(f"{key}: {value}" for key, value in self.style.items())
            parts.append(f'style="{html.escape(css)}"')
        return "<" + " ".join(parts) + ">"

    def inner_html(self) -> str:
        return html.escape(self.text) + "".join(child.to_html() for child in self.children)

    def to_html(self) -> str:
        if self.tag in VOID_TAGS:
            return self._open_tag()
        return f"{self._open_tag()}{self.inner_html()}</{self.tag}>"
