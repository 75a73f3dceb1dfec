# tests/test_config.py
from pathlib import Path

from liqradar.config import Config, load_config


def test_load_config_from_yaml(tmp_path: Path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("""
feed:
  spot_enabled: false
  max_reconnect_attempts: 10

liquidation:
  high_cap:
    volume_usd: 150000
    price_change_pct: 2.5
    force_order_min_usd: 40000

volume:
  min_samples: 5

session:
  liquidations:
    cap: 100
    max_age_minutes: 10

telegram:
  bot_token: "test_token"
  chat_id: "test_chat"

database:
  path: "data/test.db"
  retention_hours: 6
""")

    config = load_config(config_file)

    assert config.feed.spot_enabled is False
    assert config.feed.max_reconnect_attempts == 10
    assert config.liquidation.high_cap.volume_usd == 150000
    assert config.liquidation.low_cap.volume_usd == 25000
    assert config.volume.min_samples == 5
    assert config.volume.history_size == 20
    assert config.session.liquidations.cap == 100
    assert config.session.volume_alerts.cap == 150
    assert config.telegram is not None
    assert config.telegram.bot_token == "test_token"
    assert config.database.retention_hours == 6


def test_empty_config_uses_defaults(tmp_path: Path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")

    config = load_config(config_file)

    assert config.telegram is None
    assert config.feed.max_reconnect_attempts is None
    assert config.feed.reconnect_delay_seconds == 5
    assert config.liquidation.high_cap.price_change_pct == 2.0
    assert config.liquidation.low_cap.price_change_pct == 3.0
    assert config.alerts.min_intensity == 4
    assert config.mirror.failure_threshold == 5


def test_default_session_limits():
    config = Config()

    assert config.session.large_orders.max_age_minutes == 5
    assert config.session.reversals.cap == 15
    assert config.session.coin_trends.max_age_minutes == 10
    assert config.session.asset_max_age_minutes == 15
