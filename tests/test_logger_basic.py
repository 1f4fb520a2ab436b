import json

import pytest

from cloud_function_exporter import Config, ValidationError, get_logger


def test_json_metric_prints_when_enabled(cfg, exporter_metrics, capsys):
    """Verify json_metric prints JSON to stdout when METRICS_ENABLED."""
    cfg.METRICS_ENABLED = True
    logger = get_logger(cfg, exporter_metrics)

    logger.json_metric('test_metric', 1.0, labels={'phase': 'collect'}, info={'a': 1}, message='hello')
    obj = json.loads(capsys.readouterr().out.strip())

    assert obj['metric_name'] == 'test_metric'
    assert obj['metric_value'] == 1.0
    assert obj['labels'] == {'phase': 'collect'}
    assert obj['info']['a'] == 1
    assert obj['message'] == 'hello'
    assert obj['app_name'] == 'cloud_function_exporter'
    assert obj['event_type'] == 'metric'


def test_json_metric_not_prints_when_disabled(cfg, exporter_metrics, capsys):
    """Verify json_metric does not print when METRICS_ENABLED is False."""
    cfg.METRICS_ENABLED = False
    logger = get_logger(cfg, exporter_metrics)

    logger.json_metric('test_metric', 1.0, info={'a': 1})
    assert capsys.readouterr().out.strip() == ''


def test_app_name_env_override(monkeypatch, tmp_path, exporter_metrics, capsys):
    """Verify APP_NAME from env overrides config."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv('APP_NAME', 'my_custom_exporter')
    monkeypatch.setenv('METRICS_ENABLED', 'true')
    logger = get_logger(Config(), exporter_metrics)

    logger.json_metric('msg1', 1.0)
    obj = json.loads(capsys.readouterr().out.strip())

    assert obj['app_name'] == 'my_custom_exporter'


def test_metric_updates_prometheus_and_json(cfg, exporter_metrics, prom_registry, capsys):
    """Verify metric() updates the Prometheus counter and emits JSON."""
    cfg.METRICS_ENABLED = True
    logger = get_logger(cfg, exporter_metrics)

    logger.metric('phase_failures', labels={'phase': 'describe', 'reason': 'decode'}, message='bad payload')
    obj = json.loads(capsys.readouterr().out.strip())

    assert obj['metric_name'] == 'cloud_function_exporter_phase_failures_total'
    assert obj['message'] == 'bad payload'
    assert prom_registry.get_sample_value(
        'cloud_function_exporter_phase_failures_total', {'phase': 'describe', 'reason': 'decode'}
    ) == 1.0


def test_metric_counts_without_json_when_disabled(cfg, exporter_metrics, prom_registry, capsys):
    cfg.METRICS_ENABLED = False
    logger = get_logger(cfg, exporter_metrics)

    logger.metric('skipped_families', labels={'reason': 'unsupported_type'}, value=3)

    assert capsys.readouterr().out == ''
    assert prom_registry.get_sample_value(
        'cloud_function_exporter_skipped_families_total', {'reason': 'unsupported_type'}
    ) == 3.0


def test_get_logger_validates_config(cfg, exporter_metrics):
    cfg.TELEMETRY_PATH = 'metrics'
    with pytest.raises(ValidationError):
        get_logger(cfg, exporter_metrics)
