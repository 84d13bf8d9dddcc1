"""hashing モジュールのユニットテスト。"""
from mailbox_dash.util.hashing import mailbox_id, md5_hex


def test_same_text_same_hash():
    assert md5_hex("hello") == md5_hex("hello")


def test_one_char_difference_different_hash():
    assert md5_hex("hello") != md5_hex("hellx")


def test_md5_hex_format():
    h = md5_hex("")
    assert len(h) == 32
    assert all(c in "0123456789abcdef" for c in h)


def test_mailbox_id_from_link_ignores_case_and_spaces():
    assert mailbox_id(" https://X.com/l/a ") == mailbox_id("https://x.com/l/a")


def test_mailbox_id_without_link_uses_name_and_address():
    a = mailbox_id("", "Main Center", "1 Main St", "Austin", "TX", "78701")
    b = mailbox_id(None, "main center ", "1 MAIN ST", "austin", "tx", "78701")
    c = mailbox_id(None, "Main Center", "2 Main St", "Austin", "TX", "78701")
    assert a == b
    assert a != c
