"""
Namespace and type reorganizer for decompiled C# source.

Takes the concatenated text produced by ILSpyCmd and partitions it into
per-namespace and per-type compilation units. This is a lexical scanner,
not a C# parser: it only tracks keywords and brace depth, so braces inside
string literals or comments are counted like any other brace.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

GLOBAL_NAMESPACE = "(global)"

MODIFIER_KEYWORDS = frozenset({
    "public", "internal", "protected", "private", "sealed", "abstract",
    "static", "partial", "readonly", "ref", "unsafe", "new",
})

TYPE_KEYWORDS = frozenset({"class", "struct", "interface", "enum", "record"})

_NAMESPACE_KEYWORD = "namespace"
_USING_KEYWORD = "using"

_DELIMITER_PAIRS = {"{": "}", "(": ")", "[": "]", "<": ">"}


class NamespaceKind(str, Enum):
    """Declaration form of a namespace."""

    BLOCK = "block"
    FILE_SCOPED = "file_scoped"


@dataclass(frozen=True)
class NamespaceToken:
    """A namespace declaration found in the source text."""
    offset: int
    name: str
    kind: NamespaceKind


@dataclass
class ReorganizedSource:
    """Result of reorganizing one blob of decompiled source."""
    header: str
    namespaces: dict[str, str]
    kinds: dict[str, NamespaceKind] = field(default_factory=dict)
    declared: list[str] = field(default_factory=list)


def _is_word_char(ch: str) -> bool:
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ("0" <= ch <= "9")


def _is_identifier_start(ch: str) -> bool:
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def _skip_whitespace(text: str, pos: int) -> int:
    n = len(text)
    while pos < n and text[pos].isspace():
        pos += 1
    return pos


def _read_word(text: str, pos: int) -> int:
    """Return the end of the identifier-like word starting at pos."""
    n = len(text)
    while pos < n and _is_word_char(text[pos]):
        pos += 1
    return pos


def _find_keyword(text: str, keyword: str, start: int = 0) -> int:
    """Find keyword as a whole word, or -1."""
    pos = text.find(keyword, start)
    while pos != -1:
        before_ok = pos == 0 or not _is_word_char(text[pos - 1])
        end = pos + len(keyword)
        after_ok = end >= len(text) or not _is_word_char(text[end])
        if before_ok and after_ok:
            return pos
        pos = text.find(keyword, pos + 1)
    return -1


# =============================================================================
# Brace scanning
# =============================================================================


def _scan_delimiters(text: str, open_index: int) -> tuple[int, bool]:
    """
    Walk forward from an opening delimiter tracking nesting depth.

    Returns:
        (index just past the matching close, whether a match was found).
        Unmatched input returns (len(text), False).
    """
    opener = text[open_index]
    closer = _DELIMITER_PAIRS.get(opener, "}")
    depth = 0
    for i in range(open_index, len(text)):
        ch = text[i]
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i + 1, True
    return len(text), False


def find_matching_close(text: str, open_index: int) -> int:
    """
    Find the end of the nesting construct opened at open_index.

    Args:
        text: Source text
        open_index: Index of an opening delimiter ('{', '(', '[' or '<')

    Returns:
        Index immediately after the matching closing delimiter, or len(text)
        when the construct is never closed.
    """
    if open_index < 0 or open_index >= len(text):
        return len(text)
    end, _ = _scan_delimiters(text, open_index)
    return end


# =============================================================================
# Namespace tokenizer
# =============================================================================


def _match_namespace_declaration(text: str, pos: int) -> tuple[NamespaceToken, int] | None:
    """Try to read `namespace Name ;` or `namespace Name {` at pos."""
    n = len(text)
    cursor = pos + len(_NAMESPACE_KEYWORD)

    # At least one whitespace character after the keyword
    if cursor >= n or not text[cursor].isspace():
        return None
    cursor = _skip_whitespace(text, cursor)

    if cursor >= n or not _is_identifier_start(text[cursor]):
        return None
    name_start = cursor
    while cursor < n and (_is_word_char(text[cursor]) or text[cursor] == "."):
        cursor += 1
    name = text[name_start:cursor]

    cursor = _skip_whitespace(text, cursor)
    if cursor >= n:
        return None
    if text[cursor] == ";":
        kind = NamespaceKind.FILE_SCOPED
    elif text[cursor] == "{":
        kind = NamespaceKind.BLOCK
    else:
        return None

    return NamespaceToken(offset=pos, name=name, kind=kind), cursor + 1


def tokenize(text: str) -> list[NamespaceToken]:
    """
    Find every namespace declaration in the text.

    Both block (`namespace X { ... }`) and file-scoped (`namespace X;`)
    forms are recognized. Declarations nested inside a block are returned
    too; the partitioner decides what to do with them.

    Args:
        text: Source text

    Returns:
        Tokens in increasing offset order
    """
    tokens: list[NamespaceToken] = []
    pos = _find_keyword(text, _NAMESPACE_KEYWORD)
    while pos != -1:
        matched = _match_namespace_declaration(text, pos)
        if matched:
            token, resume = matched
            tokens.append(token)
        else:
            resume = pos + len(_NAMESPACE_KEYWORD)
        pos = _find_keyword(text, _NAMESPACE_KEYWORD, resume)
    return tokens


def extract_namespaces(text: str) -> list[str]:
    """Return the names of all declared namespaces, in declaration order."""
    return [token.name for token in tokenize(text)]


# =============================================================================
# Namespace partitioner
# =============================================================================


def _append(units: dict[str, str], name: str, chunk: str) -> None:
    units[name] = units.get(name, "") + chunk.strip() + "\n"


def _append_global(units: dict[str, str], chunk: str) -> None:
    if chunk:
        _append(units, GLOBAL_NAMESPACE, chunk)


def partition(text: str, tokens: list[NamespaceToken] | None = None) -> dict[str, str]:
    """
    Split source text into namespace units.

    Block namespaces take the text between their matched braces; file-scoped
    namespaces take everything up to the next declaration. Text before the
    first declaration and after the last consumed region goes to the
    "(global)" unit. A name seen more than once gets its regions
    concatenated in encounter order.

    Declarations nested inside a block are part of the parent's body and do
    not get an entry of their own.

    Args:
        text: Source text
        tokens: Output of tokenize(text); computed when omitted

    Returns:
        Insertion-ordered mapping of namespace name to member text
    """
    if tokens is None:
        tokens = tokenize(text)
    units, _ = _partition_with_kinds(text, tokens)
    return units


def _partition_with_kinds(
    text: str,
    tokens: list[NamespaceToken]
) -> tuple[dict[str, str], dict[str, NamespaceKind]]:
    """Partition, also returning the form of the first consumed declaration per name."""
    if not tokens:
        return {GLOBAL_NAMESPACE: text.strip()}, {}

    units: dict[str, str] = {}
    kinds: dict[str, NamespaceKind] = {}
    cursor = 0

    if tokens[0].offset > cursor:
        _append_global(units, text[cursor:tokens[0].offset])

    for i, token in enumerate(tokens):
        if token.offset < cursor:
            # Already consumed by an enclosing block
            continue

        kinds.setdefault(token.name, token.kind)

        if token.kind == NamespaceKind.FILE_SCOPED:
            start = text.find(";", token.offset) + 1
            end = tokens[i + 1].offset if i + 1 < len(tokens) else len(text)
            _append(units, token.name, text[start:end])
            cursor = end
        else:
            brace = text.find("{", token.offset)
            if brace == -1:
                continue
            end, matched = _scan_delimiters(text, brace)
            body_end = end - 1 if matched else end
            _append(units, token.name, text[brace + 1:body_end])
            cursor = end

    if cursor < len(text):
        _append_global(units, text[cursor:])

    logger.debug(f"Partitioned source into {len(units)} namespace units")
    return units, kinds


# =============================================================================
# Header extraction
# =============================================================================


def _is_using_directive(line: str) -> bool:
    stripped = line.strip()
    if not stripped.startswith(_USING_KEYWORD):
        return False
    rest = stripped[len(_USING_KEYWORD):]
    if not rest or not rest[0].isspace():
        return False
    # Exactly one terminating semicolon, at the end, with content before it
    if not rest.endswith(";") or rest.count(";") != 1:
        return False
    return bool(rest[:-1].strip())


def extract_header(text: str) -> str:
    """
    Collect using directives that precede the first namespace declaration.

    Args:
        text: Source text

    Returns:
        Directive lines joined with newlines, or "" when there is no header
    """
    offset = _find_keyword(text, _NAMESPACE_KEYWORD)
    if offset <= 0:
        return ""

    lines = text[:offset].splitlines()
    return "\n".join(line.rstrip() for line in lines if _is_using_directive(line))


# =============================================================================
# Type splitting
# =============================================================================


def _match_type_declaration(text: str, pos: int) -> tuple[str, int] | None:
    """
    Try to read a type declaration head starting at pos.

    Returns:
        (type name, index just past the head) or None
    """
    n = len(text)
    cursor = _skip_whitespace(text, pos)

    while cursor < n:
        word_end = _read_word(text, cursor)
        word = text[cursor:word_end]
        if not word:
            return None

        if word in TYPE_KEYWORDS:
            cursor = word_end
            break
        if word not in MODIFIER_KEYWORDS:
            return None

        # Modifiers must be separated from what follows by whitespace
        if word_end >= n or not text[word_end].isspace():
            return None
        cursor = _skip_whitespace(text, word_end)
    else:
        return None

    if cursor >= n or not text[cursor].isspace():
        return None
    cursor = _skip_whitespace(text, cursor)

    # record class / record struct
    if word == "record":
        follow_end = _read_word(text, cursor)
        if text[cursor:follow_end] in ("class", "struct") and \
           follow_end < n and text[follow_end].isspace():
            cursor = _skip_whitespace(text, follow_end)

    if cursor >= n or not _is_identifier_start(text[cursor]):
        return None
    name_end = _read_word(text, cursor)
    name = text[cursor:name_end]
    head_end = name_end

    # Optional generic parameter list
    generic_start = _skip_whitespace(text, name_end)
    if generic_start < n and text[generic_start] == "<":
        close = text.find(">", generic_start + 1)
        if close > generic_start + 1:
            head_end = close + 1

    return name, head_end


def _candidate_positions(text: str, start: int):
    """Yield start of text (when start is 0) and every position after a newline."""
    if start == 0:
        yield 0
    pos = text.find("\n", start)
    while pos != -1:
        yield pos + 1
        pos = text.find("\n", pos + 1)


def split_types(namespace_body: str) -> dict[str, str]:
    """
    Split a namespace body into top-level type declarations.

    Recognizes class, struct, interface, enum and record declarations with
    any run of modifiers and an optional generic parameter list. Declarations
    with a brace body are cut at the matching brace; bodyless records end at
    their semicolon.

    Args:
        namespace_body: Member text of one namespace

    Returns:
        Mapping of type name to declaration text; empty when no declaration
        was recognized (callers then keep the body as one unit)
    """
    text = namespace_body
    types: dict[str, str] = {}
    resume = 0

    while resume <= len(text):
        found = None
        for candidate in _candidate_positions(text, resume):
            matched = _match_type_declaration(text, candidate)
            if matched:
                found = (candidate, *matched)
                break
        if found is None:
            break

        start, name, head_end = found
        brace = text.find("{", head_end)
        semicolon = text.find(";", head_end)

        if brace != -1 and (semicolon == -1 or brace < semicolon):
            end = find_matching_close(text, brace)
        elif semicolon != -1:
            end = semicolon + 1
        else:
            end = len(text)

        chunk = text[start:end].strip()
        if name in types:
            types[name] = types[name] + "\n\n" + chunk
        else:
            types[name] = chunk

        if end >= len(text):
            break
        resume = end

    return types


# =============================================================================
# Composition
# =============================================================================


def reorganize(text: str) -> ReorganizedSource:
    """
    Run header extraction, tokenization and partitioning over one text.

    Args:
        text: Concatenated decompiled source

    Returns:
        ReorganizedSource with header directives, namespace units, the
        declaration form of each top-level namespace and all declared names
    """
    header = extract_header(text)
    tokens = tokenize(text)
    namespaces, kinds = _partition_with_kinds(text, tokens)

    return ReorganizedSource(
        header=header,
        namespaces=namespaces,
        kinds=kinds,
        declared=[token.name for token in tokens],
    )


def render_namespace_unit(
    header: str,
    name: str,
    body: str,
    kind: NamespaceKind = NamespaceKind.FILE_SCOPED
) -> str:
    """
    Re-emit a unit as a standalone compilation unit.

    The namespace declaration uses the same form as the original one. The
    global unit gets no declaration. The body is written as is, apart from
    surrounding whitespace, so multi-line literals keep their content.
    """
    parts = []
    if header:
        parts.append(header)

    body = body.strip()
    if name == GLOBAL_NAMESPACE:
        if body:
            parts.append(body)
    elif kind == NamespaceKind.BLOCK:
        parts.append(f"namespace {name}\n{{\n{body}\n}}")
    else:
        parts.append(f"namespace {name};\n\n{body}")

    return "\n\n".join(parts) + "\n"
