import httpx
import pytest

from app.client.lab_store import DEFAULT_CONFIG, LabClient, LabClientError, LabStore


class RecordingClient:
    def __init__(self, response=None):
        self.calls = []
        self.response = response or {}

    def update_profile(self, changes):
        self.calls.append(changes)
        return {**changes, **self.response}


def test_clean_store_sends_nothing():
    store = LabStore()
    client = RecordingClient()

    assert not store.dirty
    assert store.flush(client) is None
    assert client.calls == []


def test_flush_sends_only_staged_keys_then_clears():
    store = LabStore()
    client = RecordingClient()

    store.update(displayName="Alice", bio="hi")
    assert store.dirty
    store.flush(client)

    assert client.calls == [{"displayName": "Alice", "bio": "hi"}]
    assert not store.dirty
    assert store.flush(client) is None
    assert len(client.calls) == 1


def test_nested_updates_stage_the_whole_object():
    store = LabStore()
    client = RecordingClient()

    store.update_geometry("radius", 8)
    store.update_theme("motion", {"intensity": 0.5, "reduced": True})
    store.flush(client)

    sent = client.calls[0]
    assert sent["geometry"] == {**DEFAULT_CONFIG["geometry"], "radius": 8}
    assert sent["themeConfig"]["motion"] == {"intensity": 0.5, "reduced": True}
    assert sent["themeConfig"]["background"] == DEFAULT_CONFIG["themeConfig"]["background"]


def test_social_link_helpers():
    store = LabStore()
    link_id = store.add_social_link("GitHub")
    store.update_social_link(link_id, "https://github.com/alice")
    store.remove_social_link("1")

    links = store.config["socialLinks"]
    assert links[-1] == {"id": link_id, "platform": "GitHub", "url": "https://github.com/alice"}
    assert all(link["id"] != "1" for link in links)
    assert store.staged["socialLinks"] == links
    # Defaults are not mutated through the store
    assert DEFAULT_CONFIG["socialLinks"][0]["id"] == "1"


def test_flush_merges_server_response():
    store = LabStore()
    store.update(bio="hi")
    store.flush(RecordingClient(response={"views": 3, "bio": "hi (trimmed)"}))

    assert store.config["bio"] == "hi (trimmed)"
    assert "views" not in store.config


def test_failed_flush_keeps_stage():
    class FailingClient:
        def update_profile(self, changes):
            raise LabClientError(401, "Unauthorized")

    store = LabStore()
    store.update(bio="hi")
    with pytest.raises(LabClientError):
        store.flush(FailingClient())
    assert store.staged == {"bio": "hi"}


def test_import_and_export():
    store = LabStore()
    store.import_json('{"displayName": "Imported", "accentColor": "#ffffff"}')

    assert store.config["displayName"] == "Imported"
    assert store.config["bio"] == DEFAULT_CONFIG["bio"]
    assert set(store.staged) == set(DEFAULT_CONFIG)

    again = LabStore()
    again.import_json(store.export_json())
    assert again.config == store.config

    with pytest.raises(ValueError):
        store.import_json("{not json")


def test_reset_restores_defaults():
    store = LabStore({"displayName": "Custom"})
    store.reset()
    assert store.config == DEFAULT_CONFIG
    assert store.dirty


def test_against_live_api(client, register):
    api = LabClient(client)
    api.register("alice", "a@x.com", "secretpw12")

    store = LabStore()
    store.update_geometry("radius", 12)
    store.update(displayName="Alice A")
    store.update_theme("motion", {"intensity": 0.2, "reduced": True})
    sent = store.staged
    user = store.flush(api)

    assert user["displayName"] == "Alice A"
    assert user["geometry"]["radius"] == 12
    # Every staged key reads back from the server unchanged
    fresh = api.me()
    for key, value in sent.items():
        assert fresh[key] == value
    assert LabStore(fresh).config == store.config

    link = api.create_link("GitHub", "https://github.com/alice", icon="github")
    assert api.get_profile("alice")["links"][0]["id"] == link["id"]
    assert api.add_view("alice") == 1
    api.delete_link(link["id"])
    assert api.get_profile("alice")["links"] == []

    uploaded = api.upload("avatar.png", b"img", "image/png")
    assert uploaded["url"].startswith("/uploads/avatar-")

    api.logout()
    with pytest.raises(LabClientError) as err:
        api.me()
    assert err.value.status_code == 401
    assert err.value.message == "Unauthorized"


def test_client_error_falls_back_to_text():
    def handler(request):
        return httpx.Response(502, text="bad gateway")

    api = LabClient(httpx.Client(transport=httpx.MockTransport(handler), base_url="http://api"))
    with pytest.raises(LabClientError) as err:
        api.me()
    assert err.value.status_code == 502
    assert err.value.message == "bad gateway"


def test_unsaved_keys_cannot_be_staged():
    store = LabStore()
    with pytest.raises(ValueError):
        store.update(layout={"spacing": 32})
    assert not store.dirty
    assert "layout" not in store.config


def test_import_skips_keys_the_server_does_not_store():
    store = LabStore()
    store.import_json('{"bio": "imported", "layout": {"spacing": 32}, "level": 99}')

    assert store.config["bio"] == "imported"
    assert "layout" not in store.staged
    assert "level" not in store.config
