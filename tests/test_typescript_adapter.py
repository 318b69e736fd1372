"""
Tests for the TypeScript/JavaScript front-end and the chunks it produces.
"""

import pytest

from depchunk.core.chunker import Chunker, ChunkOptions
from depchunk.core.parsers import TypeScriptAdapter
from depchunk.core.parsers.typescript_parser import grammar_for_path


def by_name(chunks):
    return {chunk.qualified_name: chunk for chunk in chunks}


@pytest.fixture
def adapter() -> TypeScriptAdapter:
    return TypeScriptAdapter()


@pytest.fixture
def unmerged() -> Chunker:
    """Chunker that keeps every chunk separate."""
    return Chunker(ChunkOptions(merge_small_chunks=False, include_content=True))


class TestGrammarSelection:
    @pytest.mark.parametrize(
        "path,grammar",
        [
            ("a.ts", "typescript"),
            ("a.tsx", "tsx"),
            ("a.js", "javascript"),
            ("a.cjs", "javascript"),
            ("a.unknown", "typescript"),
        ],
    )
    def test_grammar_for_path(self, path, grammar):
        assert grammar_for_path(path) == grammar


class TestImportsAndExports:
    """File-level import and export tables."""

    def test_import_forms(self, adapter):
        code = """import React, { useState } from 'react';
import * as path from 'path';
import './styles.css';
import { format as fmt } from './utils';
const fs = require('fs');
export { helper } from './helper';
export * from './types';
"""
        root = adapter.get_root(adapter.parse(code, "a.ts"))
        imports = [
            (dep.name, dep.source, dep.kind, dep.is_default, dep.is_namespace)
            for dep in adapter.get_imports(root)
        ]

        assert imports == [
            ("React", "react", "import", True, False),
            ("useState", "react", "import", False, False),
            ("path", "path", "import", False, True),
            ("*", "./styles.css", "import", False, False),
            ("format", "./utils", "import", False, False),
            ("fs", "fs", "require", False, False),
            ("helper", "./helper", "import", False, False),
            ("*", "./types", "import", False, True),
        ]

    def test_dynamic_import_inside_function(self, adapter):
        code = """export async function load() {
  const mod = await import('./lazy');
  return mod;
}
"""
        root = adapter.get_root(adapter.parse(code, "a.ts"))
        (declaration,) = adapter.get_top_level_declarations(root)
        deps = adapter.get_imports(declaration)

        assert [(d.name, d.source, d.kind) for d in deps] == [("*", "./lazy", "dynamic-import")]

    def test_export_forms(self, adapter):
        code = """export function a() {}
const c = 1, d = 2;
export { c, d as dee };
export const e = 1, f = 2;
export * as ns from './x';
"""
        root = adapter.get_root(adapter.parse(code, "a.ts"))
        exports = [(e.name, e.local_name, e.source) for e in adapter.get_exports(root)]

        assert ("a", "a", None) in exports
        assert ("c", "c", None) in exports
        assert ("dee", "d", None) in exports
        assert ("e", "e", None) in exports
        assert ("f", "f", None) in exports
        assert ("ns", None, "./x") in exports


class TestFunctionChunks:
    def test_function_metadata(self, unmerged):
        code = """/** Greets a user. */
export async function greet(name: string, greeting = "hi"): Promise<string> {
  return name;
}
"""
        (chunk,) = unmerged.chunk_code(code, "src/greet.ts")

        assert chunk.type == "function"
        assert chunk.name == "greet"
        assert chunk.exported and chunk.export_name == "greet"
        assert chunk.is_async and not chunk.is_generator
        assert (chunk.start_line, chunk.end_line) == (2, 4)
        assert chunk.jsdoc == "/** Greets a user. */"
        assert chunk.return_type == "Promise<string>"
        assert [(p.name, p.type, p.optional, p.default_value) for p in chunk.parameters] == [
            ("name", "string", False, None),
            ("greeting", None, True, '"hi"'),
        ]
        assert chunk.content.startswith("export async function greet")

    def test_generator_and_type_parameters(self, unmerged):
        code = """function* ids() {
  yield 1;
}
export function identity<T>(value: T): T {
  return value;
}
"""
        chunks = by_name(unmerged.chunk_code(code, "a.ts"))

        assert chunks["ids"].is_generator
        assert not chunks["ids"].exported
        assert chunks["identity"].type_parameters == ["T"]
        assert chunks["identity"].return_type == "T"

    def test_arrow_function_variable(self, unmerged):
        """`const f = () => {}` is a function chunk spanning the whole statement."""
        code = """export const add = (a: number, b: number): number => a + b;
const local = function () { return 1; };
"""
        chunks = by_name(unmerged.chunk_code(code, "a.ts"))

        add = chunks["add"]
        assert add.type == "function"
        assert add.exported
        assert add.content == "export const add = (a: number, b: number): number => a + b;"
        assert [p.name for p in add.parameters] == ["a", "b"]
        assert add.return_type == "number"
        assert chunks["local"].type == "function"
        assert not chunks["local"].exported

    def test_plain_variables(self, unmerged):
        """Exported values become export chunks; private values yield nothing."""
        code = """export const LIMIT = 10;
const hidden = 5;
"""
        chunks = unmerged.chunk_code(code, "a.ts")

        assert [(c.name, c.type) for c in chunks] == [("LIMIT", "export")]

    def test_export_clause_marks_declaration_exported(self, unmerged):
        code = """function helper() {
  return 1;
}
export { helper as util };
export default helper;
"""
        (chunk,) = unmerged.chunk_code(code, "a.ts")
        assert chunk.exported
        assert chunk.export_name == "default"

    def test_default_export_declaration(self, unmerged):
        code = "export default function main() {\n  return 0;\n}\n"
        (chunk,) = unmerged.chunk_code(code, "a.ts")
        assert chunk.export_name == "default"


class TestClassChunks:
    CODE = """@Injectable()
export class UserService extends BaseService implements Api {
  private cache = new Map();

  constructor(private repo: Repo) {
    super();
  }

  async find(id: string): Promise<User> {
    return this.repo.get(id);
  }

  protected reset() {}

  #secret() {}

  @Memo()
  handler = () => {};
}
"""

    def test_members_are_nested(self, unmerged):
        chunks = unmerged.chunk_code(self.CODE, "src/service.ts")
        index = by_name(chunks)
        service = index["UserService"]

        members = [
            "UserService.constructor",
            "UserService.find",
            "UserService.reset",
            "UserService.#secret",
            "UserService.handler",
        ]
        assert [c.qualified_name for c in chunks] == ["UserService"] + members
        assert service.children_ids == [index[name].id for name in members]
        assert all(index[name].parent_id == service.id for name in members)
        assert all(index[name].type == "method" for name in members)

    def test_member_metadata(self, unmerged):
        index = by_name(unmerged.chunk_code(self.CODE, "src/service.ts"))

        assert index["UserService"].decorators == ["Injectable()"]
        assert index["UserService"].start_line == 1
        assert index["UserService.find"].is_async
        assert index["UserService.find"].visibility == "public"
        assert index["UserService.reset"].visibility == "protected"
        assert index["UserService.#secret"].visibility == "private"
        assert index["UserService.handler"].decorators == ["Memo()"]
        assert not index["UserService.find"].exported

    def test_class_references(self, unmerged):
        (service, *_) = unmerged.chunk_code(self.CODE, "src/service.ts")
        references = {d.name for d in service.dependencies if d.kind == "reference"}

        assert {"BaseService", "Api", "Map", "Repo", "User"} <= references
        assert "UserService" not in references

    def test_include_nested_off(self):
        chunker = Chunker(ChunkOptions(include_nested=False))
        chunks = chunker.chunk_code(self.CODE, "src/service.ts")
        assert [c.name for c in chunks] == ["UserService"]
        assert chunks[0].children_ids == []


class TestTypeDeclarations:
    def test_interface_enum_alias(self, unmerged):
        code = """export interface User { id: string }
enum Color { Red, Green }
export type Id = string | number;
"""
        chunks = unmerged.chunk_code(code, "a.ts")
        assert [(c.name, c.type, c.exported) for c in chunks] == [
            ("User", "interface", True),
            ("Color", "enum", False),
            ("Id", "type-alias", True),
        ]

    def test_namespace_members(self, unmerged):
        code = """export namespace Geometry {
  export interface Point { x: number }
  export function distance(a: Point, b: Point): number {
    return 0;
  }
}
"""
        chunks = unmerged.chunk_code(code, "a.ts")
        index = by_name(chunks)

        assert [c.qualified_name for c in chunks] == [
            "Geometry",
            "Geometry.Point",
            "Geometry.distance",
        ]
        assert index["Geometry"].type == "namespace"
        assert index["Geometry.distance"].parent_id == index["Geometry"].id
        assert index["Geometry"].children_ids == [
            index["Geometry.Point"].id,
            index["Geometry.distance"].id,
        ]

    def test_references_skip_imported_names(self, unmerged):
        code = """import { Point } from './geometry';
export function make(): Point {
  return build();
}
"""
        (chunk,) = unmerged.chunk_code(code, "a.ts")
        deps = [(d.name, d.source, d.kind) for d in chunk.dependencies]

        assert ("build", "", "reference") in deps
        assert ("Point", "./geometry", "import") in deps
        assert ("Point", "", "reference") not in deps

    def test_type_variables_are_not_references(self, unmerged):
        """Generic parameters and mapped-type keys never point at same-named declarations."""
        code = """interface K { id: string }
interface Shape { kind: string }
type T<K> = { [P in keyof K]: K[P] };
function pick<V extends Shape>(value: V): V {
  return value;
}
"""
        index = by_name(unmerged.chunk_code(code, "a.ts"))

        alias_refs = {d.name for d in index["T"].dependencies if d.kind == "reference"}
        pick_refs = {d.name for d in index["pick"].dependencies if d.kind == "reference"}
        assert alias_refs.isdisjoint({"K", "P"})
        assert pick_refs == {"Shape"}


class TestJavaScriptAndTsx:
    def test_javascript_file(self, unmerged):
        code = """const path = require('path');
function join(a, b) {
  return path.join(a, b);
}
module.exports = { join };
"""
        (chunk,) = unmerged.chunk_code(code, "lib/join.js")
        assert chunk.name == "join"
        assert ("path", "path", "require") in [(d.name, d.source, d.kind) for d in chunk.dependencies]

    def test_tsx_component_references(self, unmerged):
        code = """export function App() {
  return <Layout><Header title="x" /></Layout>;
}
"""
        (chunk,) = unmerged.chunk_code(code, "src/App.tsx")
        references = {d.name for d in chunk.dependencies if d.kind == "reference"}
        assert {"Layout", "Header"} <= references
