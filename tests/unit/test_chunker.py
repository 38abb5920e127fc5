"""Tests for per-file chunking and declaration extraction."""

import pytest

from devcanvas.core.exceptions import ExtractionError
from devcanvas.core.types.common import ChunkKind, Language
from devcanvas.parsers.chunker import Chunker, split_lines
from devcanvas.parsers.strategies import strategy_for_language

PYTHON_SOURCE = '''import os


@dataclass
class Config:
    name: str

    def load(self, path: str) -> "Config":
        if os.path.exists(path):
            return Config(path)
        return Config("")


def run_job():
    print("hi")
'''

JS_SOURCE = """export class UserService {
  constructor(repo) {
    this.repo = repo;
  }

  async findUser(id) {
    if (!id) {
      return null;
    }
    return this.repo.get(id);
  }
}

function helper(a, b) {
  return a + b;
}

const add = (x, y) => {
  return x + y;
};
"""

JAVA_SOURCE = """package com.example;

@RestController
public class UserController {
    private final UserRepository repo;

    public UserController(UserRepository repo) {
        this.repo = repo;
    }

    @GetMapping("/users")
    public List<User> listUsers() {
        return repo.findAll();
    }
}

interface Auditable {
    void audit();
}
"""

VUE_SOURCE = """<template>
  <div>{{ msg }}</div>
</template>

<script>
export default {
  name: "Hello",
};

function greet(name) {
  return "hi " + name;
}
</script>
"""


JS_TEST_SOURCE = """describe('auth', function () {
  beforeEach(() => {
    reset();
  });

  it('logs in', function () {
    setTimeout(function () {
      done();
    }, 10);
  });
});
"""

DART_SOURCE = """class CounterState {
  int count = 0;

  void increment() {
    setState(() {
      count++;
    });
  }
}
"""

TS_SOURCE = """class Store {
  get(): { a: number } {
    const value = 1;
    return { a: value };
  }
}
"""


def _symbols(chunks, kind):
    return {c.symbol_name: c for c in chunks if c.kind is kind}


def _big_function(lines: int = 20) -> str:
    return "def big():\n" + "".join(f"    value_{i} = {i}\n" for i in range(lines))


class TestSplitLines:
    def test_greedy_accumulation(self):
        pieces = split_lines("aaaa\nbbbb\ncccc", max_chars=9)
        assert [(p.content, p.start_line, p.end_line) for p in pieces] == [
            ("aaaa\nbbbb", 1, 2),
            ("cccc", 3, 3),
        ]

    def test_long_line_is_hard_wrapped(self):
        pieces = split_lines("x" * 25, max_chars=10)
        assert [len(p.content) for p in pieces] == [10, 10, 5]
        assert all(p.start_line == p.end_line == 1 for p in pieces)

    def test_trailing_newline_is_not_a_line(self):
        pieces = split_lines("a = 1\nb = 2\n", max_chars=100)
        assert [(p.content, p.start_line, p.end_line) for p in pieces] == [
            ("a = 1\nb = 2", 1, 2)
        ]

    def test_line_offset(self):
        pieces = split_lines("a\nb", max_chars=100, first_line=40)
        assert (pieces[0].start_line, pieces[0].end_line) == (40, 41)


class TestFileAndBlockChunks:
    def test_small_file_is_one_file_chunk(self):
        chunks = Chunker().chunk_file("notes.txt", "hello world\nsecond line")
        assert len(chunks) == 1
        chunk = chunks[0]
        assert chunk.kind is ChunkKind.FILE
        assert (chunk.start_line, chunk.end_line) == (1, 2)
        assert chunk.content == "hello world\nsecond line"

    def test_file_chunk_ignores_trailing_newline(self):
        chunk = Chunker().chunk_file("app.py", "a = 1\nb = 2\n")[0]
        assert (chunk.start_line, chunk.end_line) == (1, 2)

    def test_blocks_ignore_trailing_newline(self):
        content = "".join(f"line number {i}\n" for i in range(100))
        chunks = Chunker(max_chunk_size=200).chunk_file("big.txt", content)
        assert chunks[-1].end_line == 100

    def test_empty_file_has_no_chunks(self):
        assert Chunker().chunk_file("empty.py", "  \n\n") == []

    def test_large_file_becomes_blocks(self):
        content = "\n".join(f"line number {i}" for i in range(100))
        chunks = Chunker(max_chunk_size=200).chunk_file("big.txt", content)

        assert chunks
        assert all(c.kind is ChunkKind.BLOCK for c in chunks)
        assert all(len(c.content) <= 200 for c in chunks)
        assert [c.metadata.block_index for c in chunks] == list(range(len(chunks)))
        assert chunks[0].start_line == 1
        assert chunks[-1].end_line == 100

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            Chunker(max_chunk_size=0)


class TestPythonExtraction:
    def test_declarations(self):
        chunks = Chunker().chunk_file("app/config.py", PYTHON_SOURCE)

        classes = _symbols(chunks, ChunkKind.CLASS)
        functions = _symbols(chunks, ChunkKind.FUNCTION)
        assert set(classes) == {"Config"}
        assert set(functions) == {"load", "run_job"}

        config = classes["Config"]
        assert (config.start_line, config.end_line) == (4, 11)
        assert config.content.startswith("@dataclass")

        load = functions["load"]
        assert (load.start_line, load.end_line) == (8, 11)
        assert load.metadata.parameters == ("path",)
        assert load.complexity == 2

        assert (functions["run_job"].start_line, functions["run_job"].end_line) == (14, 15)

    def test_protocol_is_interface(self):
        source = "class Greeter(Protocol):\n    def greet(self) -> str:\n        ...\n"
        chunks = Chunker().chunk_file("greeter.py", source)

        interfaces = _symbols(chunks, ChunkKind.INTERFACE)
        assert set(interfaces) == {"Greeter"}
        assert interfaces["Greeter"].metadata.base_types == ("Protocol",)
        assert "greet" in _symbols(chunks, ChunkKind.FUNCTION)

    def test_column_zero_string_does_not_end_body(self):
        source = 'def f():\n    x = """\ntop-level text\n"""\n    return x\n\n\ndef g():\n    pass\n'
        functions = _symbols(Chunker().chunk_file("strings.py", source), ChunkKind.FUNCTION)
        assert (functions["f"].start_line, functions["f"].end_line) == (1, 5)
        assert functions["f"].content.endswith("return x")
        assert (functions["g"].start_line, functions["g"].end_line) == (8, 9)

    def test_duplicate_names_get_distinct_ids(self):
        source = (
            "class A:\n    def handler(self):\n        return 1\n\n\n"
            "class B:\n    def handler(self):\n        return 2\n"
        )
        chunks = Chunker().chunk_file("handlers.py", source)

        handlers = [c for c in chunks if c.symbol_name == "handler"]
        assert len(handlers) == 2
        assert len({c.id for c in chunks}) == len(chunks)


class TestBraceExtraction:
    def test_test_framework_callbacks_are_not_functions(self):
        chunks = Chunker().chunk_file("tests/auth.test.js", JS_TEST_SOURCE)
        assert _symbols(chunks, ChunkKind.FUNCTION) == {}

    def test_typescript_async_arrow_callbacks(self):
        source = "describe('api', () => {\n  it('works', async () => {\n    await run();\n  });\n});\n"
        chunks = Chunker().chunk_file("api.spec.ts", source)
        assert _symbols(chunks, ChunkKind.FUNCTION) == {}

    def test_dart_set_state_is_not_a_function(self):
        chunks = Chunker().chunk_file("lib/counter.dart", DART_SOURCE)
        functions = _symbols(chunks, ChunkKind.FUNCTION)
        assert set(functions) == {"increment"}
        assert (functions["increment"].start_line, functions["increment"].end_line) == (4, 8)

    def test_object_literal_return_type(self):
        chunks = Chunker().chunk_file("src/store.ts", TS_SOURCE)
        get = _symbols(chunks, ChunkKind.FUNCTION)["get"]
        assert (get.start_line, get.end_line) == (2, 5)

    def test_javascript(self):
        chunks = Chunker().chunk_file("src/service.js", JS_SOURCE)

        classes = _symbols(chunks, ChunkKind.CLASS)
        functions = _symbols(chunks, ChunkKind.FUNCTION)
        assert set(classes) == {"UserService"}
        assert set(functions) == {"constructor", "findUser", "helper", "add"}

        assert (classes["UserService"].start_line, classes["UserService"].end_line) == (1, 12)
        assert (functions["findUser"].start_line, functions["findUser"].end_line) == (6, 11)
        assert (functions["helper"].start_line, functions["helper"].end_line) == (14, 16)
        assert (functions["add"].start_line, functions["add"].end_line) == (18, 20)
        assert functions["helper"].metadata.parameters == ("a", "b")
        # 1 file chunk + 1 class + 4 functions
        assert len(chunks) == 6

    def test_java(self):
        chunks = Chunker().chunk_file("src/UserController.java", JAVA_SOURCE)

        controller = _symbols(chunks, ChunkKind.CLASS)["UserController"]
        assert controller.start_line == 3
        assert controller.importance == 1.0

        functions = _symbols(chunks, ChunkKind.FUNCTION)
        assert set(functions) == {"UserController", "listUsers"}
        assert functions["listUsers"].content.lstrip().startswith("@GetMapping")
        assert functions["listUsers"].importance == 0.9
        assert functions["UserController"].metadata.parameters == ("repo",)

        interfaces = _symbols(chunks, ChunkKind.INTERFACE)
        assert (interfaces["Auditable"].start_line, interfaces["Auditable"].end_line) == (17, 19)

    def test_braces_inside_strings_are_ignored(self):
        source = 'function odd() {\n  const s = "}}}";\n  return s;\n}\n'
        chunks = Chunker().chunk_file("odd.js", source)
        odd = _symbols(chunks, ChunkKind.FUNCTION)["odd"]
        assert (odd.start_line, odd.end_line) == (1, 4)


class TestComponentExtraction:
    def test_vue_script_lines_are_file_relative(self):
        chunks = Chunker().chunk_file("components/Hello.vue", VUE_SOURCE)

        greet = _symbols(chunks, ChunkKind.FUNCTION)["greet"]
        assert (greet.start_line, greet.end_line) == (10, 12)
        assert greet.framework_tag == "vue"

        file_chunk = next(c for c in chunks if c.kind is ChunkKind.FILE)
        assert file_chunk.importance == 1.0


class TestOversizePolicy:
    def test_drop(self):
        result = Chunker(max_chunk_size=120, oversize_policy="drop").chunk_file_detailed(
            "big.py", _big_function()
        )
        assert result.dropped_oversize == 1
        assert not [c for c in result.chunks if c.kind is ChunkKind.FUNCTION]
        assert all(len(c.content) <= 120 for c in result.chunks)

    def test_truncate(self):
        chunks = Chunker(max_chunk_size=120, oversize_policy="truncate").chunk_file(
            "big.py", _big_function()
        )
        functions = [c for c in chunks if c.kind is ChunkKind.FUNCTION]
        assert len(functions) == 1
        assert functions[0].symbol_name == "big"
        assert functions[0].start_line == 1
        assert len(functions[0].content) == 120
        assert all(len(c.content) <= 120 for c in chunks)

    def test_split(self):
        chunks = Chunker(max_chunk_size=120, oversize_policy="split").chunk_file(
            "big.py", _big_function()
        )
        parts = [c for c in chunks if c.kind is ChunkKind.FUNCTION]
        assert len(parts) > 1
        assert parts[0].symbol_name == "big#part1"
        assert parts[0].start_line == 1
        assert all(len(c.content) <= 120 for c in chunks)
        assert len({c.id for c in chunks}) == len(chunks)


class TestDeterminism:
    def test_ids_are_stable(self):
        first = Chunker().chunk_file("src/service.js", JS_SOURCE)
        second = Chunker().chunk_file("src/service.js", JS_SOURCE)
        assert [c.id for c in first] == [c.id for c in second]

    def test_ids_depend_on_path(self):
        a = Chunker().chunk_file("a.js", JS_SOURCE)
        b = Chunker().chunk_file("b.js", JS_SOURCE)
        assert not {c.id for c in a} & {c.id for c in b}


def test_extraction_failure_is_wrapped(monkeypatch):
    strategy = strategy_for_language(Language.PYTHON)

    def explode(self, content):
        raise RuntimeError("boom")

    monkeypatch.setattr(type(strategy), "extract", explode)
    with pytest.raises(ExtractionError):
        Chunker().chunk_file("broken.py", "def f():\n    pass\n")


def test_plain_text_has_no_strategy():
    assert strategy_for_language(Language.TEXT) is None
