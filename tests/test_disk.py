import pytest

from huadb.disk import LOG_NAME, LOG_SEGMENT_SIZE, Disk, file_path
from huadb.errors import DbError
from huadb.page import DB_PAGE_SIZE


@pytest.fixture
def disk(tmp_path):
    with Disk(tmp_path / "data") as d:
        yield d


def test_file_path_format():
    assert file_path(3, 17) == "3/17"


def test_log_file_created_with_one_segment(tmp_path):
    with Disk(tmp_path / "data"):
        pass
    assert (tmp_path / "data" / LOG_NAME).stat().st_size == LOG_SEGMENT_SIZE


def test_bad_log_size_rejected(tmp_path):
    base = tmp_path / "data"
    base.mkdir()
    (base / LOG_NAME).write_bytes(b"abc")
    with pytest.raises(DbError):
        Disk(base)


def test_create_and_empty_file(disk):
    path = file_path(1, 2)
    assert not disk.file_exists(path)
    disk.create_file(path)
    assert disk.file_exists(path)
    assert disk.is_empty_file(path) is True


def test_is_empty_file_missing_raises(disk):
    with pytest.raises(DbError):
        disk.is_empty_file("1/99")


def test_remove_file(disk):
    disk.create_file("1/5")
    disk.remove_file("1/5")
    assert not disk.file_exists("1/5")


def test_page_round_trip(disk):
    path = file_path(1, 2)
    disk.create_file(path)
    payload = bytes(range(256)) * (DB_PAGE_SIZE // 256)
    disk.write_page(path, 1, payload)
    assert disk.read_page(path, 1) == payload
    assert disk.is_empty_file(path) is False


def test_read_short_file_raises(disk):
    path = file_path(1, 3)
    disk.create_file(path)
    with pytest.raises(DbError):
        disk.read_page(path, 0)


def test_read_missing_file_raises(disk):
    with pytest.raises(DbError):
        disk.read_page("1/42", 0)


def test_write_to_missing_file_is_ignored(disk):
    disk.write_page("1/77", 0, bytes(DB_PAGE_SIZE))
    assert not disk.file_exists("1/77")
    assert disk.access_count == 0


def test_access_count_skips_system_database(disk):
    disk.create_file("0/1")
    disk.create_file("2/1")
    page = bytes(DB_PAGE_SIZE)
    disk.write_page("0/1", 0, page)
    disk.read_page("0/1", 0)
    assert disk.access_count == 0
    disk.write_page("2/1", 0, page)
    disk.read_page("2/1", 0)
    assert disk.access_count == 2


def test_log_round_trip(disk):
    disk.write_log(10, b"hello")
    assert disk.read_log(10, 5) == b"hello"


def test_log_grows_by_segment(tmp_path):
    base = tmp_path / "data"
    with Disk(base) as d:
        d.write_log(LOG_SEGMENT_SIZE - 2, b"abcd")
        assert d.read_log(LOG_SEGMENT_SIZE - 2, 4) == b"abcd"
    assert (base / LOG_NAME).stat().st_size == 2 * LOG_SEGMENT_SIZE


def test_read_log_past_end_raises(disk):
    with pytest.raises(DbError):
        disk.read_log(LOG_SEGMENT_SIZE - 1, 2)