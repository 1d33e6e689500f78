import pytest

from huadb.errors import DbError
from huadb.log_records import (
    BeginCheckpointLog,
    BeginLog,
    CommitLog,
    DeleteLog,
    EndCheckpointLog,
    InsertLog,
    LogRecord,
    LogType,
    NewPageLog,
    RollbackLog,
    deserialize,
)


def _samples():
    return [
        BeginLog(10, 1, 0),
        CommitLog(20, 1, 10),
        RollbackLog(30, 2, 15),
        BeginCheckpointLog(40, 0, 0),
        InsertLog(50, 3, 45, 7, 2, 4, 3000, b"\x00abc\x01payload"),
        DeleteLog(60, 3, 50, 7, 2, 4),
        NewPageLog(70, 3, 60, 7, 2, 3),
        EndCheckpointLog(80, 0, 0, {1: 10, 3: 70}, {(7, 2): 50, (7, 3): 70}),
    ]


@pytest.mark.parametrize("record", _samples(), ids=lambda r: type(r).__name__)
def test_round_trip(record):
    decoded = deserialize(record.lsn, record.to_bytes())
    assert decoded == record
    assert type(decoded) is type(record)


@pytest.mark.parametrize("index", range(len(_samples())))
def test_size_matches_encoding(index):
    record = _samples()[index]
    encoded = record.to_bytes()
    decoded = deserialize(record.lsn, encoded)
    assert decoded.size == len(encoded)
    assert record.size == len(encoded)


@pytest.mark.parametrize("index", range(len(_samples())))
def test_first_byte_is_type(index):
    record = _samples()[index]
    encoded = record.to_bytes()
    decoded = deserialize(record.lsn, encoded)
    assert encoded[0] == int(decoded.log_type)


def test_lsn_is_not_stored():
    record = CommitLog(5, 9, 3)
    assert deserialize(123, record.to_bytes()).lsn == 123
    assert CommitLog(999, 9, 3).to_bytes() == record.to_bytes()


def test_begin_log_wire_bytes():
    encoded = BeginLog(0, 1, 0).to_bytes()
    expected = bytes([LogType.BEGIN]) + (1).to_bytes(4, "little") + (0).to_bytes(8, "little")
    assert encoded == expected


def test_header_only_records_share_size():
    sizes = {BeginLog(0, 1, 2).size, CommitLog(0, 1, 2).size, RollbackLog(0, 1, 2).size}
    assert sizes == {13}


def test_insert_size_grows_with_record():
    short = InsertLog(0, 1, 0, 1, 0, 0, 100, b"ab")
    longer = InsertLog(0, 1, 0, 1, 0, 0, 100, b"abcdef")
    assert longer.size - short.size == 4
    assert longer.record_size == 6


def test_insert_record_too_large():
    with pytest.raises(DbError):
        InsertLog(0, 1, 0, 1, 0, 0, 0, bytes(0x10000))


def test_empty_end_checkpoint_round_trip():
    record = EndCheckpointLog(8, 0, 0)
    decoded = deserialize(8, record.to_bytes())
    assert decoded.att == {}
    assert decoded.dpt == {}


def test_end_checkpoint_tables_preserved():
    att = {4: 100, 5: 200}
    dpt = {(1, 0): 90, (2, 6): 150}
    decoded = deserialize(1, EndCheckpointLog(1, 0, 0, att, dpt).to_bytes())
    assert decoded.att == att
    assert decoded.dpt == dpt


def test_unknown_type_rejected():
    with pytest.raises(DbError):
        deserialize(0, bytes([99]) + bytes(12))


def test_truncated_header_rejected():
    with pytest.raises(DbError):
        deserialize(0, bytes([LogType.COMMIT, 1, 0]))


def test_truncated_body_rejected():
    encoded = DeleteLog(0, 1, 0, 2, 3, 4).to_bytes()
    with pytest.raises(DbError):
        deserialize(0, encoded[:-1])


def test_truncated_insert_record_rejected():
    encoded = InsertLog(0, 1, 0, 2, 3, 4, 5, b"hello").to_bytes()
    with pytest.raises(DbError):
        deserialize(0, encoded[:-2])


def test_begin_log_string():
    assert str(BeginLog(5, 2, 0)) == "BeginLog\t\t[lsn: 5\tsize: 13\txid: 2\tprev_lsn: 0]"


def test_delete_log_string_fields():
    record = DeleteLog(7, 3, 1, 11, 12, 13)
    text = str(record)
    assert text.startswith("DeleteLog\t\t[lsn: 7\t")
    assert text.endswith(" oid: 11\tpage_id: 12\tslot_id: 13]")


def test_insert_log_string_reports_record_size():
    text = str(InsertLog(1, 2, 0, 3, 4, 5, 6, b"xyz"))
    assert text.startswith("InsertLog\t\t[")
    assert "\tpage_offset: 6\trecord_size: 3]" in text


def test_new_page_log_string():
    text = str(NewPageLog(1, 2, 0, 3, 4, 5))
    assert text.endswith("\toid: 3\tprev_page_id: 4\tpage_id: 5]")


def test_end_checkpoint_string():
    text = str(EndCheckpointLog(1, 0, 0, {4: 9}, {(2, 3): 8}))
    assert text.startswith("EndCheckpointLog\t[")
    assert text.endswith(" att: {(4: 9) } dpt: {(2, 3: 8) }]")


def test_all_types_decodable():
    decoded_types = {deserialize(r.lsn, r.to_bytes()).log_type for r in _samples()}
    assert decoded_types == set(LogType)


def test_records_are_log_records():
    samples = _samples()
    decoded = [deserialize(r.lsn, r.to_bytes()) for r in samples]
    assert [d.lsn for d in decoded] == [r.lsn for r in samples]
    assert [isinstance(d, LogRecord) for d in decoded] == [True] * len(samples)