import pytest


def test_open_or_stdin(mocker):
    from pgslowlog._helpers import open_or_stdin

    stdin = object()
    assert open_or_stdin("-", stdin=stdin) is stdin

    open_ = mocker.patch("pgslowlog._helpers.open", create=True)
    open_.return_value = fo = object()

    assert open_or_stdin("postgresql.log") is fo
    open_.assert_called_once_with("postgresql.log", "rb")


def test_open_or_return(tmp_path):
    from pgslowlog._helpers import open_or_return

    conffile = tmp_path / "postgresql.conf"
    conffile.write_text("port = 5432\n")

    # A path, as str or Path, is opened then closed.
    for path in (conffile, str(conffile)):
        with open_or_return(path) as fo:
            assert str(conffile) == fo.name
            assert "port = 5432\n" == fo.read()
        assert fo.closed

    # A file object is left open.
    with conffile.open() as fo:
        with open_or_return(fo) as ret:
            assert ret is fo
        assert not fo.closed


def test_timer(mocker):
    from pgslowlog._helpers import Timer

    time = mocker.patch("pgslowlog._helpers.time")
    time.monotonic.side_effect = [10.0, 12.5]
    with Timer() as timer:
        assert 0.0 == timer.elapsed
    assert 2.5 == timer.elapsed


def test_strtobool():
    from pgslowlog._helpers import strtobool

    assert strtobool("y")
    assert strtobool("ON")
    assert not strtobool("n")
    assert not strtobool("0")
    with pytest.raises(ValueError):
        strtobool("maybe")
