"""Tests for dispatcher wiring."""

from civicline.infra.settings import MetaConfig, PortalSettings
from civicline.services import engine
from civicline.whatsapp.meta_sender import LoggingMessenger, MetaMessenger

from helpers import text_event


class TestBuildMessenger:
    def test_logging_messenger_without_credentials(self):
        assert isinstance(engine.build_messenger(PortalSettings()), LoggingMessenger)

    def test_meta_messenger_with_credentials(self):
        settings = PortalSettings(meta=MetaConfig(phone_number_id="123", access_token="tok"))
        assert isinstance(engine.build_messenger(settings), MetaMessenger)


class TestBuildDispatcher:
    def test_memory_backend_handles_a_message(self):
        messenger = LoggingMessenger()
        dispatcher = engine.build_dispatcher(PortalSettings(tenant_id="zp-test"), messenger=messenger)

        result = dispatcher.dispatch(text_event("hi"))

        assert result.status == "processed"
        assert messenger.sent[-1]["type"] == "buttons"

    def test_singleton_can_be_replaced(self, dispatcher):
        engine.set_dispatcher(dispatcher)
        assert engine.get_dispatcher() is dispatcher

    def test_singleton_is_built_lazily(self, monkeypatch):
        monkeypatch.delenv("CIVICLINE_STORAGE_BACKEND", raising=False)
        monkeypatch.delenv("META_ACCESS_TOKEN", raising=False)
        first = engine.get_dispatcher()
        assert engine.get_dispatcher() is first
