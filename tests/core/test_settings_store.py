from sourcelens.core.settings_store import ENABLED_KEY, SettingsStore


def test_missing_state_file_means_enabled(tmp_path):
    assert SettingsStore(tmp_path).load_enabled() is True


def test_corrupt_state_file_means_enabled(tmp_path):
    (tmp_path / "state.yml").write_text("extensionEnabled: [unclosed", encoding="utf-8")

    assert SettingsStore(tmp_path).load_enabled() is True


def test_non_boolean_value_means_enabled(tmp_path):
    (tmp_path / "state.yml").write_text(f"{ENABLED_KEY}: maybe\n", encoding="utf-8")

    assert SettingsStore(tmp_path).load_enabled() is True


def test_saved_flag_round_trips_and_notifies_on_change(tmp_path):
    store = SettingsStore(tmp_path / "nested")
    seen = []
    store.subscribe(seen.append)

    store.save_enabled(False)
    store.save_enabled(False)
    store.save_enabled(True)

    assert SettingsStore(tmp_path / "nested").load_enabled() is True
    assert seen == [False, True]
