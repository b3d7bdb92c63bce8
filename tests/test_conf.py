from textwrap import dedent

import pytest


def test_parse_value():
    from pgslowlog.conf import parse_value

    assert "%m [%p] " == parse_value("'%m [%p] '")
    assert "it's" == parse_value("'it''s'")
    assert "it's" == parse_value(r"'it\'s'")
    assert "5432" == parse_value("'5432'")
    assert "" == parse_value("''")
    assert 5432 == parse_value("5432")
    assert 0.5 == parse_value("0.5")
    assert "3s" == parse_value("3s")
    assert parse_value("on") is True
    assert parse_value("off") is False

    with pytest.raises(ValueError):
        parse_value("'unterminated")
    with pytest.raises(ValueError):
        parse_value("'")


def test_parse_string():
    from pgslowlog.conf import get_log_line_prefix, parse_string

    conf = parse_string(
        dedent(
            """\
            # Some comment
            #log_line_prefix = '%t '
            log_min_duration_statement = 1000	# -1 is disabled
            log_line_prefix = '%m [%p] # %q%u@%d '		# special values:
            logging_collector on

            port=5432
            port = 5433
            """
        )
    )

    assert "%m [%p] # %q%u@%d " == conf["log_line_prefix"]
    assert "%m [%p] # %q%u@%d " == get_log_line_prefix(conf)
    assert 1000 == conf.log_min_duration_statement
    assert conf.logging_collector is True
    assert 5433 == conf.port
    assert "port" in conf
    assert "ssl" not in conf
    assert conf.get("ssl") is None
    assert sorted(conf) == sorted(conf.as_dict())
    assert "(string)" in repr(conf)
    with pytest.raises(AttributeError):
        conf.ssl


def test_default_log_line_prefix():
    from pgslowlog.conf import get_log_line_prefix, parse_string

    conf = parse_string("#log_line_prefix = '%t '\n")
    assert "%m [%p] " == get_log_line_prefix(conf)


def test_parse_ko():
    from pgslowlog.conf import parse_string
    from pgslowlog.errors import ParseError

    with pytest.raises(ParseError) as ei:
        parse_string("port = 5432\nbad line here\n")
    assert 2 == ei.value.lineno
    assert "malformed" in str(ei.value)

    with pytest.raises(ParseError, match="unterminated"):
        parse_string("log_line_prefix = '%m\n")


def test_parse_file(tmp_path):
    from pgslowlog.conf import parse

    path = tmp_path / "postgresql.conf"
    path.write_text("log_line_prefix = '%t [%p]: '\n")

    for fo in (path, str(path)):
        conf = parse(fo)
        assert "%t [%p]: " == conf.log_line_prefix
        assert str(path) == conf.path

    with path.open() as fo:
        assert "%t [%p]: " == parse(fo).log_line_prefix
