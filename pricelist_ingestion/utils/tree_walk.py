"""Generic outermost-match tree collection.

Used for word-processor XML where tables, rows, cells and text runs may sit
at any depth below their parent (inside content controls, hyperlinks,
smart tags, ...).
"""
from typing import Callable, Iterable, List, TypeVar

N = TypeVar("N")


def collect_nodes(
    root: N,
    is_match: Callable[[N], bool],
    children: Callable[[N], Iterable[N]],
) -> List[N]:
    """Collect the outermost descendants of ``root`` satisfying ``is_match``.

    The walk does not descend into a matched node, so nested structures of
    the same kind (a table inside a table cell) are left to a later walk
    rooted at the match. Document order is preserved.
    """
    found: List[N] = []
    stack = list(reversed(list(children(root))))
    while stack:
        node = stack.pop()
        if is_match(node):
            found.append(node)
            continue
        stack.extend(reversed(list(children(node))))
    return found


def collect_elements(element, tag: str) -> list:
    """Collect outermost XML elements with the given (Clark-notation) tag."""
    return collect_nodes(
        element,
        is_match=lambda node: node.tag == tag,
        children=lambda node: list(node),
    )
