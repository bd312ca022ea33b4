import pytest


@pytest.mark.parametrize("fmt", ["counts", "tree"])
def test_compress_and_uncompress_roundtrip(sample_file, tmp_path, no_progress, m, fmt):
    packed = tmp_path / "out.hf"
    restored = tmp_path / "restored.txt"

    assert m.main(["compress", str(sample_file), "-o", str(packed), "-f", fmt]) == 0
    assert packed.exists() and packed.stat().st_size > 0
    assert m.main(["uncompress", str(packed), "-o", str(restored)]) == 0
    assert restored.read_bytes() == sample_file.read_bytes()
    assert no_progress


def test_compress_file_returns_bits(sample_file, tmp_path, capsys, m):
    packed = tmp_path / "out.hf"
    bits = m.compress_file(str(sample_file), str(packed), m.FORMATS["tree"],
                           force=False, hide_progress=True)
    assert (bits + 7) // 8 == packed.stat().st_size
    assert "Compression ratio" in capsys.readouterr().out


def test_compress_refuses_growth_without_force(tmp_path, capsys, m):
    src = tmp_path / "all_bytes.bin"
    src.write_bytes(bytes(range(256)))
    packed = tmp_path / "out.hf"

    assert m.main(["compress", str(src), "-o", str(packed), "-P"]) == 0
    assert not packed.exists()
    assert "force" in capsys.readouterr().out

    assert m.main(["compress", str(src), "-o", str(packed), "-P", "--force"]) == 0
    assert packed.exists()


def test_uncompress_bad_file_reports_error(tmp_path, capsys, m):
    bad = tmp_path / "bad.hf"
    bad.write_bytes(b"BAD!" + b"\x00" * 8)
    assert m.main(["uncompress", str(bad), "-o", str(tmp_path / "x"), "-P"]) == 1
    assert "magic" in capsys.readouterr().err


def test_empty_input_reports_error(tmp_path, capsys, m):
    empty = tmp_path / "empty.txt"
    empty.write_bytes(b"")
    assert m.main(["compress", str(empty), "-o", str(tmp_path / "x.hf")]) == 1
    assert "No bytes" in capsys.readouterr().err


def test_missing_input_file(tmp_path, capsys, m):
    assert m.main(["compress", str(tmp_path / "nope"), "-o", str(tmp_path / "x")]) == 1
    assert "not found" in capsys.readouterr().out


def test_tree_command_lists_codes(sample_file, capsys, m):
    assert m.main(["tree", str(sample_file)]) == 0
    out = capsys.readouterr().out
    assert "EOF" in out
    assert "*" in out


def test_failed_uncompress_removes_output(sample_file, tmp_path, capsys, m):
    packed = tmp_path / "out.hf"
    assert m.main(["compress", str(sample_file), "-o", str(packed), "-P"]) == 0
    packed.write_bytes(packed.read_bytes()[:-10])
    restored = tmp_path / "restored.txt"

    assert m.main(["uncompress", str(packed), "-o", str(restored), "-P"]) == 1
    assert not restored.exists()
    assert "PSEUDO_EOF" in capsys.readouterr().err
