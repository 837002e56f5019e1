import textwrap

import pytest

from reddit_relay.config import (
    ConfigError,
    PairConfig,
    parse_app_config,
    parse_env_config,
    resolve_targets,
)


def _write(path, body):
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return str(path)


def test_parse_app_config_reads_pairs_and_settings(tmp_path):
    config_path = _write(
        tmp_path / "config.xml",
        """\
        <config>
          <env>env.xml</env>
          <interval-seconds>120</interval-seconds>
          <batch-size>3</batch-size>
          <description-limit>2048</description-limit>
          <announce-empty>true</announce-empty>
          <color>0x00FF00</color>
          <logging><level>DEBUG</level><file>logs/relay.log</file></logging>
          <pairs>
            <pair name="news">
              <feed>https://www.reddit.com/r/news/new/.rss</feed>
              <webhook>https://discord.com/api/webhooks/1/abc</webhook>
            </pair>
            <pair>
              <feed>https://www.reddit.com/r/pics/new/.rss</feed>
              <webhook env="PICS_WEBHOOK"/>
              <site>https://www.reddit.com/r/pics/</site>
            </pair>
          </pairs>
        </config>
        """,
    )

    config = parse_app_config(config_path)

    assert config.env_file == str((tmp_path / "env.xml").resolve())
    assert config.interval_seconds == 120
    assert config.batch_size == 3
    assert config.description_limit == 2048
    assert config.announce_empty is True
    assert config.color == 0x00FF00
    assert config.logging.level == "DEBUG"
    assert config.logging.file == str((tmp_path / "logs" / "relay.log").resolve())
    assert config.pairs[0] == PairConfig(
        name="news",
        feed_url="https://www.reddit.com/r/news/new/.rss",
        webhook_url="https://discord.com/api/webhooks/1/abc",
    )
    assert config.pairs[1].name == "pair-2"
    assert config.pairs[1].webhook_env == "PICS_WEBHOOK"
    assert config.pairs[1].site_url == "https://www.reddit.com/r/pics/"


def test_parse_app_config_defaults(tmp_path):
    config_path = _write(
        tmp_path / "config.xml",
        "<config><pairs/></config>",
    )

    config = parse_app_config(config_path)

    assert config.batch_size == 5
    assert config.description_limit == 4096
    assert config.interval_seconds is None
    assert config.announce_empty is False
    assert config.pairs == []


@pytest.mark.parametrize(
    "fragment",
    [
        "<description-limit>5000</description-limit>",
        "<batch-size>0</batch-size>",
        "<interval-seconds>-1</interval-seconds>",
        "<batch-size>five</batch-size>",
    ],
)
def test_parse_app_config_rejects_invalid_values(tmp_path, fragment):
    config_path = _write(tmp_path / "config.xml", f"<config>{fragment}<pairs/></config>")

    with pytest.raises(ConfigError):
        parse_app_config(config_path)


def test_parse_app_config_requires_pairs_section(tmp_path):
    config_path = _write(tmp_path / "config.xml", "<config/>")

    with pytest.raises(ConfigError):
        parse_app_config(config_path)


def test_parse_app_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        parse_app_config(str(tmp_path / "missing.xml"))


def test_parse_env_config(tmp_path):
    env_path = _write(
        tmp_path / "env.xml",
        """\
        <environment>
          <variable name="DISCORD_WEBHOOK_URL"> https://discord.com/api/webhooks/1/x </variable>
          <variable name="EMPTY"></variable>
        </environment>
        """,
    )

    assert parse_env_config(env_path) == {
        "DISCORD_WEBHOOK_URL": "https://discord.com/api/webhooks/1/x"
    }


def test_resolve_targets_reads_env_and_drops_incomplete_pairs(caplog):
    caplog.set_level("ERROR")
    pairs = [
        PairConfig(name="literal", feed_url="https://f/1", webhook_url="https://w/1"),
        PairConfig(name="from-env", feed_url="https://f/2", webhook_env="HOOK"),
        PairConfig(name="unset-env", feed_url="https://f/3", webhook_env="MISSING"),
        PairConfig(name="no-feed", feed_url=None, webhook_url="https://w/4"),
    ]

    targets = resolve_targets(pairs, environ={"HOOK": "https://w/2"})

    assert [(t.name, t.webhook_url) for t in targets] == [
        ("literal", "https://w/1"),
        ("from-env", "https://w/2"),
    ]
    assert "unset-env" in caplog.text
    assert "$MISSING is unset" in caplog.text
    assert "no-feed" in caplog.text


def test_parse_app_config_rejects_cursor_smaller_than_batch(tmp_path):
    config_path = _write(
        tmp_path / "config.xml",
        "<config><batch-size>5</batch-size><cursor-capacity>2</cursor-capacity><pairs/></config>",
    )

    with pytest.raises(ConfigError, match="cursor-capacity"):
        parse_app_config(config_path)
