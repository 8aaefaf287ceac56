import pytest

from site_cache.errors import ConfigurationError, FilesystemError
from site_cache.fsutils import clean_directory, glob_paths, glob_stat, make_dirs, write_file


@pytest.mark.asyncio()
async def test_write_file_creates_parents(tmp_path):
    target = tmp_path / "a" / "b" / "c.html"
    path = await write_file(target, "<html>ü</html>")
    assert path.read_text(encoding="utf-8") == "<html>ü</html>"


@pytest.mark.asyncio()
async def test_write_file_over_directory_fails(tmp_path):
    (tmp_path / "taken").mkdir()
    with pytest.raises(FilesystemError) as info:
        await write_file(tmp_path / "taken", "x")
    assert isinstance(info.value, OSError)
    assert "taken" in str(info.value)


@pytest.mark.asyncio()
async def test_make_dirs_is_idempotent(tmp_path):
    await make_dirs(tmp_path / "x" / "y")
    await make_dirs(tmp_path / "x" / "y")
    assert (tmp_path / "x" / "y").is_dir()


@pytest.mark.asyncio()
async def test_clean_directory_keeps_root(tmp_path):
    (tmp_path / "sub" / "deep").mkdir(parents=True)
    (tmp_path / "sub" / "deep" / "f.html").write_text("x", encoding="utf-8")
    (tmp_path / ".hidden").write_text("x", encoding="utf-8")
    (tmp_path / "top.html").write_text("x", encoding="utf-8")

    removed = await clean_directory(tmp_path)

    assert removed == 3
    assert tmp_path.is_dir()
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio()
async def test_clean_missing_directory_is_noop(tmp_path):
    assert await clean_directory(tmp_path / "nope") == 0


@pytest.mark.asyncio()
@pytest.mark.parametrize("directory", [None, "", "   "])
async def test_clean_directory_requires_path(directory):
    with pytest.raises(ConfigurationError):
        await clean_directory(directory)


@pytest.mark.asyncio()
async def test_glob_only_matches_files(tmp_path):
    (tmp_path / "dir.html").mkdir()
    (tmp_path / "page-1.html").write_text("1", encoding="utf-8")
    (tmp_path / "page-2.html").write_text("2", encoding="utf-8")

    paths = await glob_paths("**/*.html", tmp_path)
    assert [p.as_posix() for p in paths] == ["page-1.html", "page-2.html"]

    stats = await glob_stat("**/*.html", tmp_path)
    assert [s.path for s in stats] == ["page-1.html", "page-2.html"]
    assert all(s.mtime for s in stats)


@pytest.mark.asyncio()
async def test_glob_rejects_absolute_pattern(tmp_path):
    with pytest.raises(ConfigurationError):
        await glob_paths(str(tmp_path / "*.html"), tmp_path)
