"""
_newick.py
==========
NEWICK codec: tokenizer, tree-type detection, stack-based construction and
serialization.

Public API
----------
  tokenize(text) -> list[Token]
  remove_comments(label) -> str
  parse(text, strip_comments=False) -> CladoTree | ChronoTree
  serialize(tree) -> str
  read_newick(path, strip_comments=False)
  write_newick(path, tree)

Grammar
-------
  tree  := node ';'
  node  := (label? | '(' node (',' node)* ')' label?) (':' float)?

Labels are maximal runs of characters other than ``( ) , : ;``.  Square
bracket comments may nest; characters inside them never end a label, and
they are kept verbatim unless ``strip_comments=True``.

Tree type
---------
A tree with no branch lengths is a ``CladoTree``.  A tree with a length on
every non-root node is a ``ChronoTree``.  Anything in between raises
``InconsistentBranchLengthsError``.  The root's own length is special:
an explicit ``:0`` (any spelling of zero) is dropped during tokenization,
a nonzero one is kept as the root's ``t_branch`` and written back by
``serialize``.

Node-ID conventions
-------------------
Nodes are allocated in the order their first token appears, so indices
are pre-order: the root is 1 and every parent precedes its children.
"""

import logging
from typing import List, NamedTuple

from chronoclade._exceptions import InconsistentBranchLengthsError, MalformedInputError
from chronoclade._logging import log_parse_summary
from chronoclade._tree import ChronoTree, CladoTree

logger = logging.getLogger(__name__)

# Token kinds
OPEN = "("
CLOSE = ")"
COMMA = ","
END = ";"
LABEL = "label"
CLOSE_LABEL = "close_label"
LENGTH = "length"
ROOT_LENGTH = "root_length"

_STRUCTURAL = "(),:;"
_WHITESPACE = " \t\r\n"


class Token(NamedTuple):
    kind: str
    value: object = None


# ======================================================================== #
# Comments                                                                  #
# ======================================================================== #


def remove_comments(label: str) -> str:
    """
    Remove square-bracket comments, possibly nested, from *label*.

    Idempotent: a label without brackets is returned unchanged.

    Raises
    ------
    MalformedInputError   if the brackets do not balance.

    Examples
    --------
    >>> remove_comments("296[&rate=9.1E-4]")
    '296'
    >>> remove_comments("[1[2]3]")
    ''
    """
    if "[" not in label and "]" not in label:
        return label
    out = []
    depth = 0
    for c in label:
        if c == "[":
            depth += 1
        elif c == "]":
            depth -= 1
            if depth < 0:
                raise MalformedInputError(f"Unbalanced ']' in label {label!r}")
        elif depth == 0:
            out.append(c)
    if depth != 0:
        raise MalformedInputError(f"Unterminated '[' comment in label {label!r}")
    return "".join(out)


# ======================================================================== #
# Tokenizer                                                                 #
# ======================================================================== #


def _scan_label(s: str, i: int) -> int:
    """
    Return the end of the label starting at *i*: the first structural
    character outside brackets, or ``len(s)``.
    """
    n = len(s)
    depth = 0
    j = i
    while j < n:
        c = s[j]
        if c == "[":
            depth += 1
        elif c == "]":
            depth -= 1
            if depth < 0:
                raise MalformedInputError(f"Unbalanced ']' at position {j}")
        elif depth == 0 and c in _STRUCTURAL:
            break
        j += 1
    if depth != 0:
        raise MalformedInputError(f"Unterminated '[' comment starting after position {i}")
    return j


def _parse_length(text: str, position: int) -> float:
    # A comment trailing a branch length carries no node data; drop it.
    text = remove_comments(text).strip()
    try:
        return float(text)
    except ValueError:
        raise MalformedInputError(
            f"Invalid branch length {text!r} at position {position}"
        ) from None


def tokenize(text: str) -> List[Token]:
    """
    Split a NEWICK string into typed tokens.

    A label is emitted (possibly empty) for every child slot that is not an
    opening parenthesis, so unnamed tips are represented.  A label right
    after ``)`` is a ``CLOSE_LABEL`` naming the node just closed and is only
    emitted when non-empty.  The root's branch length becomes a
    ``ROOT_LENGTH`` token, or disappears when it is zero.

    Raises
    ------
    MalformedInputError
        Missing terminal ``;``, unbalanced parentheses or brackets, stray
        characters, or an unreadable branch length.
    """
    s = text.strip()
    if not s.endswith(";"):
        raise MalformedInputError("The NEWICK string does not end with a semicolon.")

    n = len(s)
    tokens = []
    depth = 0
    expect_node = True
    has_length = False
    i = 0
    while i < n:
        c = s[i]

        if c in _WHITESPACE:
            i += 1
            continue

        if c == "(":
            if not expect_node:
                raise MalformedInputError(f"Unexpected '(' at position {i}")
            tokens.append(Token(OPEN))
            depth += 1
            i += 1
            continue

        if expect_node:
            j = _scan_label(s, i)
            tokens.append(Token(LABEL, s[i:j].strip()))
            expect_node = False
            has_length = False
            i = j
            continue

        if c == ",":
            if depth == 0:
                raise MalformedInputError(f"Unexpected ',' at top level, position {i}")
            tokens.append(Token(COMMA))
            expect_node = True
            i += 1
            continue

        if c == ")":
            if depth == 0:
                raise MalformedInputError(
                    "Numbers of left and right parentheses are unequal."
                )
            depth -= 1
            tokens.append(Token(CLOSE))
            has_length = False
            i += 1
            j = _scan_label(s, i)
            label = s[i:j].strip()
            if label:
                tokens.append(Token(CLOSE_LABEL, label))
            i = j
            continue

        if c == ":":
            if has_length:
                raise MalformedInputError(
                    f"Second branch length for one node at position {i}"
                )
            has_length = True
            j = _scan_label(s, i + 1)
            value = _parse_length(s[i + 1 : j], i + 1)
            if depth > 0:
                tokens.append(Token(LENGTH, value))
            elif value != 0.0:
                tokens.append(Token(ROOT_LENGTH, value))
            i = j
            continue

        if c == ";":
            if depth != 0:
                raise MalformedInputError(
                    "Numbers of left and right parentheses are unequal."
                )
            if i != n - 1:
                raise MalformedInputError(
                    f"Unexpected content after ';' at position {i + 1}"
                )
            tokens.append(Token(END))
            break

        raise MalformedInputError(f"Unexpected character {c!r} at position {i}")

    return tokens


def tree_type(tokens: List[Token]) -> type:
    """
    Decide between ``CladoTree`` and ``ChronoTree`` for a token sequence.

    Raises
    ------
    InconsistentBranchLengthsError
        Branch lengths on some but not all non-root nodes.
    """
    n_open = 0
    n_tip = 0
    n_length = 0
    has_root_length = False
    for token in tokens:
        if token.kind == OPEN:
            n_open += 1
        elif token.kind == LABEL:
            n_tip += 1
        elif token.kind == LENGTH:
            n_length += 1
        elif token.kind == ROOT_LENGTH:
            has_root_length = True

    if n_length == 0 and not has_root_length:
        return CladoTree
    if n_length == n_tip + n_open - 1:
        return ChronoTree
    raise InconsistentBranchLengthsError(
        f"Branch lengths should occur on either all or none of the nodes: "
        f"found {n_length} for {n_tip + n_open - 1} non-root node(s)."
    )


# ======================================================================== #
# Construction                                                              #
# ======================================================================== #


def parse(text: str, strip_comments: bool = False):
    """
    Parse a NEWICK string into a ``CladoTree`` or a ``ChronoTree``.

    Construction keeps an explicit stack whose last two entries are
    ``[current parent, last child so far]`` (0 = none yet).  The root is
    created as the only child of a virtual node 0, so it takes the same
    path as every other node.

    Parameters
    ----------
    text           : str    NEWICK string; must end with ';'.
    strip_comments : bool   Remove ``[...]`` comments from labels.

    Returns
    -------
    CladoTree   when the string has no branch lengths.
    ChronoTree  when every non-root node has one; ``t_root`` is computed.

    Examples
    --------
    >>> tree = parse("(A:0.1,B:0.2,(C:0.3,D:0.4)E:0.5)F;")
    >>> tree.names[1:]
    ['F', 'A', 'B', 'E', 'C', 'D']
    """
    tokens = tokenize(text)
    cls = tree_type(tokens)
    tree = cls()
    chrono = cls is ChronoTree

    stack = [0, 0]
    for token in tokens:
        kind = token.kind

        if kind == LABEL or kind == OPEN:
            parent = stack[-2]
            p = tree._append(parent=parent)
            if parent != 0:
                if stack[-1] == 0:
                    tree.child[parent] = p
                else:
                    tree.sibling[stack[-1]] = p
            stack[-1] = p
            if kind == LABEL:
                tree.names[p] = remove_comments(token.value) if strip_comments else token.value
            else:
                stack.append(0)

        elif kind == CLOSE:
            stack.pop()

        elif kind == CLOSE_LABEL:
            label = token.value
            tree.names[stack[-1]] = remove_comments(label) if strip_comments else label

        elif kind == LENGTH or kind == ROOT_LENGTH:
            if chrono:
                tree.t_branch[stack[-1]] = token.value

    tree.calibrate_t_root()
    log_parse_summary(cls.__name__, len(tree), sum(1 for t in tokens if t.kind == LABEL))
    return tree


# ======================================================================== #
# Serialization                                                             #
# ======================================================================== #


def format_length(value: float) -> str:
    """Shortest string that parses back to the same float."""
    return repr(float(value))


def serialize(tree) -> str:
    """
    Write *tree* as a NEWICK string.

    Iterative pre-order emission with an integer work stack: ``i > 0`` opens
    node *i*, ``-i`` closes it, ``0`` writes a comma.  For a ``ChronoTree``
    every non-root node carries ``:length``; the root does only when its
    branch length is nonzero.

    For any tree produced by ``parse``, ``parse(serialize(tree)) == tree``
    and re-serializing is byte-for-byte stable.
    """
    n = len(tree)
    if n == 0:
        return ";"

    chrono = isinstance(tree, ChronoTree)
    names = tree.names
    child = tree.child
    sibling = tree.sibling
    t_branch = tree.t_branch if chrono else None

    def suffix(i):
        if chrono and (i != 1 or t_branch[1] != 0.0):
            return names[i] + ":" + format_length(t_branch[i])
        return names[i]

    out = []
    stack = [1]
    while stack:
        item = stack.pop()
        if item == 0:
            out.append(",")
            continue
        if item < 0:
            out.append(")")
            out.append(suffix(-item))
            continue

        c = int(child[item])
        if c == 0:
            out.append(suffix(item))
            continue

        out.append("(")
        stack.append(-item)
        kids = []
        while c != 0:
            kids.append(c)
            c = int(sibling[c])
        for k in range(len(kids) - 1, -1, -1):
            stack.append(kids[k])
            if k > 0:
                stack.append(0)

    out.append(";")
    return "".join(out)


# ======================================================================== #
# Files                                                                     #
# ======================================================================== #


def read_newick(path, strip_comments: bool = False):
    """Parse the trimmed contents of the NEWICK file at *path*."""
    with open(path) as fh:
        text = fh.read().strip()
    logger.debug("Read %d characters from %s", len(text), path)
    return parse(text, strip_comments=strip_comments)


def write_newick(path, tree) -> None:
    """Write ``serialize(tree)`` to *path*, followed by a newline."""
    with open(path, "w") as fh:
        fh.write(serialize(tree))
        fh.write("\n")
