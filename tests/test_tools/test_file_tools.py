from pathlib import Path

import pytest

from termx.tools.edit import EditFileTool
from termx.tools.insert import InsertInFileTool
from termx.tools.list_dir import ListDirTool
from termx.tools.read import ReadFileTool
from termx.tools.write import WriteFileTool


@pytest.mark.asyncio
async def test_read_file_numbers_lines_and_defaults_to_first_window(tmp_path: Path):
    target = tmp_path / "sample.txt"
    target.write_text("".join(f"line{i}\n" for i in range(1, 11)), encoding="utf-8")

    tool = ReadFileTool(default_max_lines=3)
    result = await tool.execute(path=str(target))

    assert result.success is True
    assert result.content == "1: line1\n2: line2\n3: line3"


@pytest.mark.asyncio
async def test_read_file_honours_explicit_range(tmp_path: Path):
    target = tmp_path / "sample.txt"
    target.write_text("a\nb\nc\nd\n", encoding="utf-8")

    result = await ReadFileTool().execute(path=str(target), start_line=2, end_line=3)

    assert result.content == "2: b\n3: c"


@pytest.mark.asyncio
async def test_read_file_errors_on_empty_range(tmp_path: Path):
    target = tmp_path / "short.txt"
    target.write_text("only\n", encoding="utf-8")

    result = await ReadFileTool().execute(path=str(target), start_line=5)

    assert result.success is False
    assert "No lines found in range 5-" in result.error


@pytest.mark.asyncio
async def test_read_file_rejects_oversized_and_binary_files(tmp_path: Path):
    big = tmp_path / "big.txt"
    big.write_text("x" * 100, encoding="utf-8")
    binary = tmp_path / "blob.bin"
    binary.write_bytes(b"\xff\xfe\x00\x81")

    too_big = await ReadFileTool(max_file_bytes=10).execute(path=str(big))
    undecodable = await ReadFileTool().execute(path=str(binary))

    assert too_big.success is False
    assert "File too large" in too_big.error
    assert undecodable.success is False
    assert "invalid UTF-8" in undecodable.error


@pytest.mark.asyncio
async def test_read_file_missing_path(tmp_path: Path):
    result = await ReadFileTool().execute(path=str(tmp_path / "nope.txt"))

    assert result.success is False
    assert result.error.startswith("Failed to get metadata")


@pytest.mark.asyncio
async def test_write_file_creates_parent_directories(tmp_path: Path):
    target = tmp_path / "nested" / "dir" / "out.txt"

    result = await WriteFileTool().execute(path=str(target), content="hello")

    assert result.success is True
    assert result.content == f"Successfully wrote to {target}"
    assert target.read_text(encoding="utf-8") == "hello"


@pytest.mark.asyncio
async def test_edit_file_replaces_every_occurrence(tmp_path: Path):
    target = tmp_path / "code.py"
    target.write_text("x = 1\ny = x + x\n", encoding="utf-8")

    result = await EditFileTool().execute(path=str(target), old_str="x", new_str="z")

    assert result.success is True
    assert "3 occurrences" in result.content
    assert target.read_text(encoding="utf-8") == "z = 1\ny = z + z\n"


@pytest.mark.asyncio
async def test_edit_file_missing_string_leaves_file_untouched(tmp_path: Path):
    target = tmp_path / "code.py"
    target.write_text("print('hi')\n", encoding="utf-8")

    result = await EditFileTool().execute(path=str(target), old_str="absent", new_str="x")

    assert result.success is False
    assert "not found" in result.error
    assert target.read_text(encoding="utf-8") == "print('hi')\n"


@pytest.mark.asyncio
async def test_insert_in_file_before_and_after_anchor(tmp_path: Path):
    target = tmp_path / "notes.txt"
    target.write_text("start\nANCHOR\nend\n", encoding="utf-8")
    tool = InsertInFileTool()

    after = await tool.execute(path=str(target), anchor="ANCHOR", content="after", position="after")
    before = await tool.execute(path=str(target), anchor="ANCHOR", content="before", position="before")

    assert after.success is True
    assert before.success is True
    assert target.read_text(encoding="utf-8") == "start\nbefore\nANCHOR\nafter\nend\n"


@pytest.mark.asyncio
async def test_insert_in_file_without_newline(tmp_path: Path):
    target = tmp_path / "inline.txt"
    target.write_text("foo(bar)", encoding="utf-8")

    await InsertInFileTool().execute(
        path=str(target), anchor="bar", content=", baz", position="after", newline=False
    )

    assert target.read_text(encoding="utf-8") == "foo(bar, baz)"


@pytest.mark.asyncio
async def test_insert_in_file_validates_anchor_and_position(tmp_path: Path):
    target = tmp_path / "notes.txt"
    target.write_text("content\n", encoding="utf-8")
    tool = InsertInFileTool()

    missing = await tool.execute(path=str(target), anchor="nowhere", content="x", position="after")
    bad_position = await tool.execute(path=str(target), anchor="content", content="x", position="middle")

    assert missing.success is False
    assert "not found" in missing.error
    assert bad_position.success is False
    assert "before" in bad_position.error


@pytest.mark.asyncio
async def test_list_dir_lists_entries(tmp_path: Path):
    (tmp_path / "b.txt").write_text("", encoding="utf-8")
    (tmp_path / "a").mkdir()

    result = await ListDirTool().execute(path=str(tmp_path))

    assert result.success is True
    assert result.content.splitlines() == [str(tmp_path / "a"), str(tmp_path / "b.txt")]


@pytest.mark.asyncio
async def test_list_dir_empty_and_missing(tmp_path: Path):
    empty = await ListDirTool().execute(path=str(tmp_path))
    missing = await ListDirTool().execute(path=str(tmp_path / "ghost"))

    assert empty.content == "Directory is empty"
    assert missing.success is False
    assert missing.error.startswith("Failed to read directory")


def test_mutating_flags_match_tool_behaviour():
    assert WriteFileTool.mutating is True
    assert EditFileTool.mutating is True
    assert InsertInFileTool.mutating is True
    assert ReadFileTool.mutating is False
    assert ListDirTool.mutating is False
