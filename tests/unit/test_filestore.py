import pytest

from src.adapters.fs.filestore import FileSystemStore, safe_filename


@pytest.fixture
def store(tmp_path):
    return FileSystemStore(str(tmp_path / "store"))


def test_save_and_read(store):
    assert store.save("test.txt", b"hello world") == "test.txt"
    assert store.read("test.txt") == b"hello world"


def test_overwrite(store):
    store.save("overwrite.txt", b"v1")
    store.save("overwrite.txt", b"v2")
    assert store.read("overwrite.txt") == b"v2"


def test_remove(store):
    store.save("zombie.txt", b"brains")
    assert store.remove("zombie.txt") is True
    assert store.remove("zombie.txt") is False
    with pytest.raises(FileNotFoundError):
        store.read("zombie.txt")


def test_path_traversal(store):
    with pytest.raises(ValueError):
        store.save("../hack.txt", b"bad")

    with pytest.raises(ValueError):
        store.read("/etc/passwd")


def test_nested_folders(store):
    assert store.save("2025/01/1-a.png", b"nested") == "2025/01/1-a.png"
    assert store.read("2025/01/1-a.png") == b"nested"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("photo.jpg", "photo.jpg"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\shot 1.png", "shot-1.png"),
        ("..", "upload"),
        ("héllo wörld.gif", "h-llo-w-rld.gif"),
    ],
)
def test_safe_filename(raw, expected):
    assert safe_filename(raw) == expected
