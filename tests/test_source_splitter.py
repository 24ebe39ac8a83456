"""
Tests for the namespace/type source reorganizer.

Uses hardcoded decompiler-style C# text as fixtures; no ILSpyCmd required.
"""

from dotnetdc.engines.static.dotnet.source_splitter import (
    GLOBAL_NAMESPACE,
    NamespaceKind,
    NamespaceToken,
    extract_header,
    extract_namespaces,
    find_matching_close,
    partition,
    render_namespace_unit,
    reorganize,
    split_types,
    tokenize,
)

# ---------------------------------------------------------------------------
# Fixtures: representative decompiled output
# ---------------------------------------------------------------------------

TWO_BLOCKS = "namespace A { X } namespace B { Y }"

TWO_FILE_SCOPED = "namespace A;\nfoo();\nnamespace B;\nbar();"

NESTED_BLOCKS = "namespace A { namespace A.B { Z } }"

DECOMPILED = (
    "using System;\n"
    "using System.Collections.Generic;\n"
    "\n"
    "namespace Contoso.Core\n"
    "{\n"
    "    public class Widget\n"
    "    {\n"
    "    }\n"
    "}\n"
    "namespace Contoso.Data;\n"
    "\n"
    "public record Row(int Id);\n"
)

TYPES_BODY = (
    "public class Alpha\n"
    "{\n"
    "    public int Value { get; set; }\n"
    "}\n"
    "\n"
    "internal static class Beta<T> where T : class\n"
    "{\n"
    "    static void Run() { }\n"
    "}\n"
    "public enum Gamma\n"
    "{\n"
    "    One,\n"
    "    Two\n"
    "}\n"
    "public record Point(int X, int Y);\n"
    "public readonly record struct Size(int W, int H);\n"
    "public interface IDelta\n"
    "{\n"
    "    void Go();\n"
    "}\n"
)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestFindMatchingClose:
    def test_flat(self):
        assert find_matching_close("{ a } b", 0) == 5

    def test_nested(self):
        assert find_matching_close("{ { } }", 0) == 7

    def test_inner_start(self):
        text = "{ { } }"
        assert find_matching_close(text, 2) == 5

    def test_unmatched_returns_end(self):
        assert find_matching_close("{ {", 0) == 3

    def test_parentheses(self):
        assert find_matching_close("f(a(b)c) + 1", 1) == 8

    def test_out_of_range(self):
        assert find_matching_close("abc", 10) == 3

    def test_braces_in_strings_are_counted(self):
        """Known limitation: literals are not understood."""
        text = '{ s = "}"; }'
        assert find_matching_close(text, 0) == text.index('"}"') + 2


class TestTokenize:
    def test_block_tokens(self):
        tokens = tokenize(TWO_BLOCKS)
        assert tokens == [
            NamespaceToken(offset=0, name="A", kind=NamespaceKind.BLOCK),
            NamespaceToken(offset=18, name="B", kind=NamespaceKind.BLOCK),
        ]

    def test_file_scoped_tokens(self):
        tokens = tokenize(TWO_FILE_SCOPED)
        assert [t.kind for t in tokens] == [NamespaceKind.FILE_SCOPED, NamespaceKind.FILE_SCOPED]
        assert [t.name for t in tokens] == ["A", "B"]

    def test_dotted_name_and_whitespace(self):
        tokens = tokenize("namespace Foo.Bar.Baz ;")
        assert tokens[0].name == "Foo.Bar.Baz"
        assert tokens[0].kind == NamespaceKind.FILE_SCOPED

    def test_brace_on_next_line(self):
        tokens = tokenize("namespace Foo\n{\n}")
        assert tokens[0].kind == NamespaceKind.BLOCK

    def test_no_space_before_brace(self):
        tokens = tokenize("namespace _Foo{}")
        assert tokens[0].name == "_Foo"

    def test_nested_tokens_reported(self):
        tokens = tokenize(NESTED_BLOCKS)
        assert [t.name for t in tokens] == ["A", "A.B"]
        assert tokens[1].offset == 14

    def test_offsets_increase(self):
        tokens = tokenize(DECOMPILED + TWO_BLOCKS)
        offsets = [t.offset for t in tokens]
        assert offsets == sorted(offsets)
        assert len(set(offsets)) == len(offsets)

    def test_rejects_non_declarations(self):
        assert tokenize("mynamespace X;") == []
        assert tokenize("namespaces X;") == []
        assert tokenize("namespace 1Foo;") == []
        assert tokenize("namespace Foo bar {") == []
        assert tokenize("namespace;") == []

    def test_keyword_at_end(self):
        assert tokenize("foo namespace") == []

    def test_empty_input(self):
        assert tokenize("") == []

    def test_extract_namespaces(self):
        assert extract_namespaces(NESTED_BLOCKS) == ["A", "A.B"]


class TestPartition:
    def test_no_namespace_is_global(self):
        assert partition("  class Foo {}\n") == {GLOBAL_NAMESPACE: "class Foo {}"}

    def test_empty_string(self):
        assert partition("") == {GLOBAL_NAMESPACE: ""}

    def test_two_blocks(self):
        result = partition(TWO_BLOCKS)
        assert {k: v.strip() for k, v in result.items()} == {"A": "X", "B": "Y"}

    def test_two_file_scoped(self):
        result = partition(TWO_FILE_SCOPED)
        assert result == {"A": "foo();\n", "B": "bar();\n"}

    def test_accepts_precomputed_tokens(self):
        assert partition(TWO_BLOCKS, tokenize(TWO_BLOCKS)) == partition(TWO_BLOCKS)

    def test_nested_block_folds_into_parent(self):
        result = partition(NESTED_BLOCKS)
        assert list(result) == ["A"]
        assert "namespace A.B { Z }" in result["A"]
        assert "A.B" not in result

    def test_unmatched_brace_extends_to_end(self):
        result = partition("namespace A { unterminated")
        assert result == {"A": "unterminated\n"}

    def test_repeated_name_is_appended(self):
        text = "namespace A;\nx();\nnamespace B;\ny();\nnamespace A;\nz();"
        result = partition(text)
        assert list(result) == ["A", "B"]
        assert result["A"] == "x();\nz();\n"
        assert result["B"] == "y();\n"

    def test_repeated_block_name_is_appended(self):
        result = partition("namespace A { one } namespace A { two }")
        assert result == {"A": "one\ntwo\n"}

    def test_leading_text_goes_to_global(self):
        result = partition("using System;\n\nnamespace A { }")
        assert list(result) == [GLOBAL_NAMESPACE, "A"]
        assert result[GLOBAL_NAMESPACE] == "using System;\n"

    def test_empty_namespace_keeps_entry(self):
        assert partition("namespace A { }") == {"A": "\n"}

    def test_trailing_text_goes_to_global(self):
        result = partition("namespace A { x }\n// trailing")
        assert list(result) == ["A", GLOBAL_NAMESPACE]
        assert result[GLOBAL_NAMESPACE] == "// trailing\n"

    def test_blank_surroundings_go_to_global(self):
        result = partition("\n\nnamespace A { x }\n\n")
        assert list(result) == [GLOBAL_NAMESPACE, "A"]
        assert result == {GLOBAL_NAMESPACE: "\n\n", "A": "x\n"}

    def test_leading_whitespace_only(self):
        assert partition("\n\nnamespace A { x }") == {GLOBAL_NAMESPACE: "\n", "A": "x\n"}

    def test_text_between_blocks_not_attributed(self):
        result = partition("namespace A { a }\nclass Gap {}\nnamespace B { b }")
        assert result == {"A": "a\n", "B": "b\n"}

    def test_mixed_forms(self):
        result = partition(DECOMPILED)
        assert list(result) == [GLOBAL_NAMESPACE, "Contoso.Core", "Contoso.Data"]
        assert result["Contoso.Core"] == "public class Widget\n    {\n    }\n"
        assert result["Contoso.Data"] == "public record Row(int Id);\n"

    def test_rejoin_keeps_bodies(self):
        first = partition(TWO_FILE_SCOPED)
        rejoined = "".join(f"namespace {name};\n{body}" for name, body in first.items())
        assert partition(rejoined) == first

    def test_rejoin_keeps_block_bodies(self):
        first = partition(TWO_BLOCKS)
        rejoined = " ".join(f"namespace {name} {{ {body} }}" for name, body in first.items())
        assert partition(rejoined) == first

    def test_rejoin_keeps_global_region(self):
        first = partition("using System;\n\nnamespace A;\nfoo();\n")
        assert first == {GLOBAL_NAMESPACE: "using System;\n", "A": "foo();\n"}

        rejoined = "".join(
            body if name == GLOBAL_NAMESPACE else f"namespace {name};\n{body}"
            for name, body in first.items()
        )
        assert partition(rejoined) == first


class TestExtractHeader:
    def test_basic(self):
        text = "using System;\nusing System.IO;\nnamespace X { }"
        assert extract_header(text) == "using System;\nusing System.IO;"

    def test_ignores_other_lines(self):
        text = (
            "// Decompiled with ILSpy\n"
            "using System;\n"
            "[assembly: AssemblyVersion(\"1.0.0.0\")]\n"
            "using static System.Math;   \n"
            "using Alias = System.Text.StringBuilder;\n"
            "namespace X;\n"
        )
        assert extract_header(text) == (
            "using System;\nusing static System.Math;\nusing Alias = System.Text.StringBuilder;"
        )

    def test_namespace_at_start(self):
        assert extract_header("namespace X { using System; }") == ""

    def test_no_namespace(self):
        assert extract_header("using System;\nclass Foo {}") == ""

    def test_word_boundary(self):
        text = "using Foo;\nclass mynamespace {}\nusing Bar;\nnamespace A {}"
        assert extract_header(text) == "using Foo;\nusing Bar;"

    def test_using_statement_not_collected(self):
        text = "using (var s = Open()) {\n}\nusing System;\nnamespace A {}"
        assert extract_header(text) == "using System;"

    def test_empty_input(self):
        assert extract_header("") == ""


class TestSplitTypes:
    def test_single_class(self):
        body = "public sealed class Foo { int x; }"
        assert split_types(body) == {"Foo": "public sealed class Foo { int x; }"}

    def test_no_types(self):
        assert split_types("int x = 1;\nvoid M() { }") == {}

    def test_empty_input(self):
        assert split_types("") == {}

    def test_all_kinds_in_order(self):
        types = split_types(TYPES_BODY)
        assert list(types) == ["Alpha", "Beta", "Gamma", "Point", "Size", "IDelta"]

    def test_brace_body_includes_nested_braces(self):
        types = split_types(TYPES_BODY)
        assert types["Alpha"] == "public class Alpha\n{\n    public int Value { get; set; }\n}"

    def test_generic_parameters(self):
        types = split_types(TYPES_BODY)
        assert types["Beta"].startswith("internal static class Beta<T> where T : class")
        assert types["Beta"].endswith("static void Run() { }\n}")

    def test_bodyless_records(self):
        types = split_types(TYPES_BODY)
        assert types["Point"] == "public record Point(int X, int Y);"
        assert types["Size"] == "public readonly record struct Size(int W, int H);"

    def test_interface_after_records(self):
        types = split_types(TYPES_BODY)
        assert types["IDelta"] == "public interface IDelta\n{\n    void Go();\n}"

    def test_nested_types_stay_in_parent(self):
        body = "public class Outer\n{\n    public class Inner { }\n}\n"
        types = split_types(body)
        assert list(types) == ["Outer"]
        assert "public class Inner { }" in types["Outer"]

    def test_methods_are_not_types(self):
        body = "public static void Main() { }\npublic class Program { }"
        assert split_types(body) == {"Program": "public class Program { }"}

    def test_attribute_line_skipped(self):
        types = split_types("[Serializable]\npublic class Foo { }")
        assert types["Foo"] == "public class Foo { }"

    def test_partial_declarations_joined(self):
        body = "public partial class Foo { int a; }\npublic partial class Foo { int b; }"
        types = split_types(body)
        assert types == {
            "Foo": "public partial class Foo { int a; }\n\npublic partial class Foo { int b; }"
        }

    def test_unterminated_body(self):
        types = split_types("public class Broken {\n    int x;")
        assert types["Broken"] == "public class Broken {\n    int x;"

    def test_declaration_without_body_or_semicolon(self):
        assert split_types("public record Orphan") == {"Orphan": "public record Orphan"}

    def test_incomplete_declarations(self):
        assert split_types("public class\n") == {}
        assert split_types("classic Foo { }") == {}


class TestReorganize:
    def test_header(self):
        source = reorganize(DECOMPILED)
        assert source.header == "using System;\nusing System.Collections.Generic;"

    def test_kinds(self):
        source = reorganize(DECOMPILED)
        assert source.kinds == {
            "Contoso.Core": NamespaceKind.BLOCK,
            "Contoso.Data": NamespaceKind.FILE_SCOPED,
        }

    def test_kind_comes_from_consumed_declaration(self):
        source = reorganize("namespace A { namespace B { } }\nnamespace B;\nx();")
        assert source.kinds == {"A": NamespaceKind.BLOCK, "B": NamespaceKind.FILE_SCOPED}
        assert source.namespaces["B"] == "x();\n"

    def test_declared_includes_nested(self):
        assert reorganize(NESTED_BLOCKS).declared == ["A", "A.B"]

    def test_types_per_namespace(self):
        source = reorganize(DECOMPILED)
        types = split_types(source.namespaces["Contoso.Core"])
        assert types == {"Widget": "public class Widget\n    {\n    }"}

    def test_empty_input(self):
        source = reorganize("")
        assert source.header == ""
        assert source.namespaces == {GLOBAL_NAMESPACE: ""}
        assert source.declared == []


class TestRenderNamespaceUnit:
    def test_file_scoped(self):
        rendered = render_namespace_unit(
            "using System;", "A.B", "class C { }\n", NamespaceKind.FILE_SCOPED
        )
        assert rendered == "using System;\n\nnamespace A.B;\n\nclass C { }\n"

    def test_block(self):
        rendered = render_namespace_unit("", "A", "class C\n{\n}\n", NamespaceKind.BLOCK)
        assert rendered == "namespace A\n{\nclass C\n{\n}\n}\n"

    def test_global_has_no_declaration(self):
        rendered = render_namespace_unit("using X;", GLOBAL_NAMESPACE, "foo();\n")
        assert rendered == "using X;\n\nfoo();\n"

    def test_global_without_body(self):
        assert render_namespace_unit("using X;", GLOBAL_NAMESPACE, "\n") == "using X;\n"

    def test_body_is_not_reindented(self):
        chunk = "public class W\n    {\n        int x;\n    }"
        rendered = render_namespace_unit("", "A", chunk, NamespaceKind.BLOCK)
        assert rendered == f"namespace A\n{{\n{chunk}\n}}\n"

    def test_verbatim_literal_content_is_kept(self):
        chunk = (
            "public class W\n"
            "    {\n"
            "        string s = @\"line1\n"
            "        line2\";\n"
            "    }"
        )
        for kind in (NamespaceKind.BLOCK, NamespaceKind.FILE_SCOPED):
            rendered = render_namespace_unit("using System;", "A", chunk, kind)
            assert "@\"line1\n        line2\";" in rendered
            assert chunk in rendered
