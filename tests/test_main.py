import io
from unittest.mock import patch

from drivepath import main


def run(storage, *argv):
    args = main.build_parser().parse_args(list(argv))
    out = io.StringIO()
    main.run(storage, args, out=out)
    return out.getvalue()


def test_mkdir_and_ls(storage):
    run(storage, "mkdir", "docs/reports")
    storage.write_file("docs/readme.txt", b"hello")

    listing = run(storage, "ls", "docs").splitlines()
    assert any(line.startswith("d") and line.endswith("docs/reports") for line in listing)
    assert any(line.startswith("-") and "5" in line and line.endswith("docs/readme.txt") for line in listing)


def test_stat(storage):
    storage.write_file("a.txt", b"abc")
    output = run(storage, "stat", "a.txt")
    assert "name: a.txt" in output
    assert "size: 3" in output


def test_put_get_rm(storage, tmp_path):
    src = tmp_path / "src.bin"
    src.write_bytes(b"payload")
    dest = tmp_path / "dest.bin"

    run(storage, "put", str(src), "remote/src.bin")
    run(storage, "get", "remote/src.bin", str(dest))
    assert dest.read_bytes() == b"payload"

    run(storage, "rm", "remote/src.bin")
    assert not storage.exists("remote/src.bin")


def test_main_reports_storage_errors(storage, capsys):
    with patch.object(main, "new_storager", return_value=storage), \
            patch.object(main, "configure_logging"):
        code = main.main(["stat", "missing.txt"])

    assert code == 1
    assert "does not exist" in capsys.readouterr().err


def test_main_reports_init_errors(capsys, monkeypatch):
    monkeypatch.delenv("DRIVEPATH_CREDENTIAL", raising=False)
    with patch.object(main, "configure_logging"), patch.object(main, "load_dotenv"):
        code = main.main(["--credential", "bogus", "ls"])

    assert code == 1
    assert "Error initializing storage" in capsys.readouterr().err
