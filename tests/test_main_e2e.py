import pytest

from errors import EmptyInput, MalformedEntry


def test_encode_and_decode_files_roundtrip(sample_files, no_progress, m):
    src, compressed, freq, decoded = sample_files
    bits = m.encode_file(str(src), str(compressed), str(freq))
    assert compressed.stat().st_size == (bits + 7) // 8
    assert compressed.stat().st_size < src.stat().st_size
    assert freq.read_text(encoding="ascii").endswith("\n")

    size = m.decode_file(str(compressed), str(decoded), str(freq))
    assert size == src.stat().st_size
    assert decoded.read_bytes() == src.read_bytes()
    assert no_progress


def test_main_roundtrip_with_tree(sample_files, capsys, m):
    src, compressed, freq, decoded = sample_files
    assert m.main(
        ["encode", str(src), "-o", str(compressed), "-f", str(freq), "-P",
         "--show-tree"]
    ) == 0
    assert m.main(
        ["decode", str(compressed), "-o", str(decoded), "-f", str(freq), "-P"]
    ) == 0
    assert decoded.read_bytes() == src.read_bytes()
    out = capsys.readouterr().out
    assert "Huffman tree created during encoding" in out
    assert "Compression ratio" in out


def test_encode_empty_file_raises(tmp_path, m):
    src = tmp_path / "empty.txt"
    src.write_bytes(b"")
    with pytest.raises(EmptyInput):
        m.encode_file(str(src), str(tmp_path / "o"), str(tmp_path / "f"), hide_progress=True)
    assert not (tmp_path / "o").exists()


def test_decode_bad_freq_file_raises(tmp_path, m):
    comp = tmp_path / "in.huf"
    comp.write_bytes(b"\x00")
    freq = tmp_path / "in.freq"
    freq.write_text("01000001-3\n", encoding="ascii")
    with pytest.raises(MalformedEntry):
        m.decode_file(str(comp), str(tmp_path / "out"), str(freq), hide_progress=True)


def test_main_reports_errors(tmp_path, capsys, m):
    missing = tmp_path / "nope.txt"
    assert m.main(
        ["e", str(missing), "-o", str(tmp_path / "o"), "-f", str(tmp_path / "f")]
    ) == 1
    assert "[!] File not found" in capsys.readouterr().out

    freq = tmp_path / "bad.freq"
    freq.write_text("garbage", encoding="ascii")
    comp = tmp_path / "c.huf"
    comp.write_bytes(b"")
    assert m.main(
        ["d", str(comp), "-o", str(tmp_path / "out"), "-f", str(freq), "-P"]
    ) == 1
    assert "MalformedEntry" in capsys.readouterr().out
