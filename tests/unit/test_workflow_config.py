import pytest

from bi_dashboards.core.config import Settings
from bi_dashboards.core.errors import ErrorKind, WorkflowError
from bi_dashboards.services.dashboard.config import (
    WorkflowConfig,
    parse_config_param,
    resolve_config,
)


def test_resolve_config_without_input_uses_dataclass_defaults():
    assert resolve_config() == WorkflowConfig()


def test_overrides_win_over_defaults_even_when_empty():
    config = resolve_config(
        {"folderName": "Team", "model": "sales", "dateField": "orders.created_date"},
        {"folderName": "Mine", "dateField": ""},
    )

    assert config.folder_name == "Mine"
    assert config.model == "sales"
    assert config.date_field == ""


def test_unknown_and_deployment_keys_are_ignored_in_overrides():
    config = resolve_config(
        {"exportDir": "/srv/exports", "exportMarker": "acme"},
        {"exportDir": "/tmp", "exportMarker": "evil", "snapshotReference": "x/y", "other": 1},
    )

    assert config.export_dir == "/srv/exports"
    assert config.export_marker == "acme"
    assert config.snapshot_reference == "configs/def"


@pytest.mark.parametrize(
    "raw, expected",
    [(10, 10), ("7", 7), (2.9, 2), (0, 5), (-3, 5), ("abc", 5), (None, 5)],
)
def test_limit_results_coercion(raw, expected):
    assert resolve_config(overrides={"limitResults": raw}).limit_results == expected


def test_base_filters_empty_object_means_none():
    assert resolve_config(overrides={"baseFilters": {}}).base_filters is None
    config = resolve_config(overrides={"baseFilters": {"orders.year": "2024"}})
    assert config.base_filters == {"orders.year": "2024"}


def test_base_filters_must_be_an_object():
    with pytest.raises(WorkflowError, match="baseFilters must be an object"):
        resolve_config(overrides={"baseFilters": ["a"]})


def test_text_options_treat_null_as_empty():
    assert resolve_config(overrides={"tileTitle": None}).tile_title == ""


def test_parse_config_param():
    assert parse_config_param(None) == {}
    assert parse_config_param("") == {}
    assert parse_config_param('{"model": "sales"}') == {"model": "sales"}


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '"text"'])
def test_parse_config_param_rejects_non_objects(raw):
    with pytest.raises(WorkflowError, match="Invalid config value") as info:
        parse_config_param(raw)
    assert info.value.kind is ErrorKind.VALIDATION
    assert info.value.status_code == 400


def test_settings_workflow_defaults_feed_resolve_config():
    settings = Settings(
        DEFAULT_FOLDER_NAME="Custom",
        DEFAULT_TILE_TITLE="Details",
        DEFAULT_LIMIT_RESULTS=8,
        EXPORT_DIR="/data",
        FIRESTORE_DOCUMENT="snapshots/current",
    )

    config = resolve_config(settings.workflow_defaults(), {"limitResults": 3})

    assert config.folder_name == "Custom"
    assert config.tile_title == "Details"
    assert config.limit_results == 3
    assert config.export_dir == "/data"
    assert config.snapshot_reference == "snapshots/current"


def test_settings_looker_api_url():
    settings = Settings(LOOKER_BASE_URL="https://acme.looker.com/", LOOKER_API_VERSION="4.0")
    assert settings.looker_api_url == "https://acme.looker.com/api/4.0"
