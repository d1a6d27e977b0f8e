from helpers.stream_parser import (
    FileKind,
    StreamTokenizer,
    kind_for_path,
    parse_file_blocks,
    scan,
    scan_packages,
)

BUFFER = (
    "Here is your app.\n"
    '<file path="src/App.jsx">\nimport Header from \'./components/Header\'\nexport default App\n</file>\n'
    "<package>framer-motion</package>\n"
    '<file path="src/components/Header.jsx">\nexport default function Header() {}\n</file>\n'
    "<package>lucide-react</package>\n"
    '<file path="src/index.css">\n@tailwind base;\n</file>\n'
)


def _feed_all(chunks):
    tokenizer = StreamTokenizer()
    updates = [tokenizer.feed(c) for c in chunks]
    return tokenizer, updates


def test_completed_files_do_not_depend_on_chunk_boundaries():
    expected = [f["path"] for f in parse_file_blocks(BUFFER)]
    assert expected == ["src/App.jsx", "src/components/Header.jsx", "src/index.css"]

    for size in (1, 2, 3, 7, 16, 64, len(BUFFER)):
        chunks = [BUFFER[i:i + size] for i in range(0, len(BUFFER), size)]
        tokenizer, _ = _feed_all(chunks)
        assert [f.path for f in tokenizer.files] == expected
        assert tokenizer.packages == ["framer-motion", "lucide-react"]

    for split in range(len(BUFFER) + 1):
        tokenizer, _ = _feed_all([BUFFER[:split], BUFFER[split:]])
        assert [f.path for f in tokenizer.files] == expected


def test_each_completed_path_is_reported_once():
    tokenizer, updates = _feed_all([BUFFER[i:i + 5] for i in range(0, len(BUFFER), 5)])
    reported = [f.path for u in updates for f in u.new_files]
    assert reported == ["src/App.jsx", "src/components/Header.jsx", "src/index.css"]

    again = tokenizer.feed("\nDone.")
    assert again.new_files == []
    assert again.new_packages == []


def test_duplicate_path_later_in_buffer_is_not_reemitted():
    tokenizer = StreamTokenizer()
    first = tokenizer.feed('<file path="a.js">one</file>')
    second = tokenizer.feed('<file path="a.js">two</file>')
    assert [f.content for f in first.new_files] == ["one"]
    assert second.new_files == []
    assert tokenizer.snapshot()["files"] == [{"path": "a.js", "content": "one"}]


def test_scan_skips_paths_already_emitted():
    result = scan(BUFFER, already_emitted={"src/App.jsx"})
    assert [f.path for f in result.completed] == ["src/components/Header.jsx", "src/index.css"]


def test_at_most_one_current_file():
    buffer = '<file path="a.js">done</file><file path="b.js">const b = 1'
    result = scan(buffer)
    assert [f.path for f in result.completed] == ["a.js"]
    assert result.current is not None
    assert result.current.path == "b.js"
    assert result.current.content == "const b = 1"
    assert result.current.completed is False

    closed = scan(buffer + "</file>")
    assert [f.path for f in closed.completed] == ["a.js", "b.js"]
    assert closed.current is None


def test_partial_header_after_completed_file():
    result = scan('<file path="a.txt">hello</file><file path="b.')
    assert [(f.path, f.content) for f in result.completed] == [("a.txt", "hello")]
    assert result.current.path == "b."
    assert result.current.content == ""


def test_partial_closing_tag_is_not_part_of_current_content():
    result = scan('<file path="a.js">hello</fi')
    assert result.completed == []
    assert result.current.content == "hello"


def test_bare_open_tag_prefix_is_a_nameless_current_file():
    result = scan("text <file")
    assert result.current is not None
    assert result.current.path == ""
    assert scan("<filesystem>").current is None


def test_prose_without_tags():
    tokenizer, updates = _feed_all(["Just ", "some ", "prose."])
    assert tokenizer.files == []
    assert all(u.current is None for u in updates)
    assert tokenizer.snapshot() == {"files": [], "packages": []}


def test_packages_are_deduplicated_in_order():
    text = "<package>zod</package><package> zod </package><package>clsx</package>"
    assert scan_packages(text) == ["zod", "clsx"]
    assert scan_packages(text, already_emitted=["zod"]) == ["clsx"]


def test_file_kind_by_extension():
    assert kind_for_path("src/App.jsx") is FileKind.SCRIPT
    assert kind_for_path("src/main.TSX") is FileKind.SCRIPT
    assert kind_for_path("src/index.css") is FileKind.STYLE
    assert kind_for_path("package.json") is FileKind.DATA
    assert kind_for_path("index.html") is FileKind.MARKUP
    assert kind_for_path("README") is FileKind.TEXT
