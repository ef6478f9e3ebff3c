"""Unit tests for gqlcache.documents."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from graphql import GraphQLError

from gqlcache.documents import (
    expand_globs,
    extract_tagged_templates,
    load_documents,
    parse_file_content,
    schema_files,
)

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def tree(tmp_path: Path) -> Path:
    (tmp_path / "src" / "nested").mkdir(parents=True)
    (tmp_path / "src" / "b.graphql").write_text("fragment B on T { id }\n")
    (tmp_path / "src" / "a.graphql").write_text("fragment A on T { id }\n")
    (tmp_path / "src" / "nested" / "c.graphql").write_text("fragment C on T { id }\n")
    (tmp_path / "src" / "readme.md").write_text("# not graphql\n")
    return tmp_path


class TestExpandGlobs:
    def test_sorted_within_pattern(self, tree: Path) -> None:
        paths = expand_globs(["src/*.graphql"], tree)
        assert [p.name for p in paths] == ["a.graphql", "b.graphql"]

    def test_recursive_pattern(self, tree: Path) -> None:
        paths = expand_globs(["src/**/*.graphql"], tree)
        assert {p.name for p in paths} == {"a.graphql", "b.graphql", "c.graphql"}

    def test_pattern_order_kept_and_duplicates_dropped(self, tree: Path) -> None:
        paths = expand_globs(["src/nested/*.graphql", "src/**/*.graphql"], tree)
        assert [p.name for p in paths] == ["c.graphql", "a.graphql", "b.graphql"]

    def test_excludes(self, tree: Path) -> None:
        paths = expand_globs(["src/**/*.graphql"], tree, excludes=["src/nested/*"])
        assert {p.name for p in paths} == {"a.graphql", "b.graphql"}

    def test_missing_directory_matches_nothing(self, tree: Path) -> None:
        assert expand_globs(["nope/*.graphql", "nope.nothing"], tree) == []

    def test_absolute_pattern(self, tree: Path) -> None:
        paths = expand_globs([str(tree / "src" / "a.graphql")], tree / "elsewhere")
        assert [p.name for p in paths] == ["a.graphql"]


class TestSchemaFiles:
    def test_directory_only_sdl_suffixes(self, tree: Path) -> None:
        assert [p.name for p in schema_files(tree / "src")] == [
            "a.graphql",
            "b.graphql",
            "c.graphql",
        ]

    def test_missing_file(self, tree: Path) -> None:
        assert schema_files(tree / "missing.graphql") == []


class TestExtractTaggedTemplates:
    def test_graphql_and_gql_tags(self) -> None:
        source = (
            "const a = graphql`fragment A on T { id }`;\n"
            "const b = gql`\n  query B { t { ...A } }\n`;\n"
            "const c = css`color: red`;\n"
        )
        assert [s.strip() for s in extract_tagged_templates(source)] == [
            "fragment A on T { id }",
            "query B { t { ...A } }",
        ]

    def test_interpolations_blanked(self) -> None:
        source = "gql`query Q { t { ...A } } ${fragmentA}`"
        (body,) = extract_tagged_templates(source)
        assert "${" not in body
        assert "query Q" in body

    def test_no_templates(self) -> None:
        assert extract_tagged_templates("export const x = 1;") == []


class TestParseFileContent:
    def test_graphql_file_is_one_document(self, tmp_path: Path) -> None:
        pairs = parse_file_content(tmp_path / "a.graphql", "fragment A on T { id }")
        assert len(pairs) == 1

    def test_embedded_file_yields_one_document_per_template(self, tmp_path: Path) -> None:
        content = "graphql`fragment A on T { id }`; graphql`fragment B on T { id }`;"
        pairs = parse_file_content(tmp_path / "a.js", content, embedded_extensions=(".js",))
        assert [source for source, _ in pairs] == [
            "fragment A on T { id }",
            "fragment B on T { id }",
        ]

    def test_custom_extractor(self, tmp_path: Path) -> None:
        pairs = parse_file_content(
            tmp_path / "a.py",
            "ignored",
            extractor=lambda _text: ["fragment P on T { id }"],
            embedded_extensions=(".py",),
        )
        assert len(pairs) == 1

    def test_syntax_error_raises(self, tmp_path: Path) -> None:
        with pytest.raises(GraphQLError):
            parse_file_content(tmp_path / "a.graphql", "fragment A on T {")


class TestLoadDocuments:
    async def test_skips_unparsable_and_missing_files(self, tree: Path) -> None:
        (tree / "src" / "broken.graphql").write_text("fragment Broken on T {")
        paths = [
            tree / "src" / "a.graphql",
            tree / "src" / "broken.graphql",
            tree / "src" / "gone.graphql",
            tree / "src" / "b.graphql",
        ]
        loaded = await load_documents(paths)
        assert [d.file_path for d in loaded] == [str(paths[0]), str(paths[3])]
