"""Tests for the endpoint table and operation-class inference."""

import pytest

from evolution_gateway.core.endpoints import (
    ENDPOINTS,
    get_endpoint,
    infer_operation_class,
    operations,
    render_path,
)
from evolution_gateway.core.errors import NotFoundError


class TestTable:
    def test_send_text(self):
        endpoint = get_endpoint("message.send_text")
        assert endpoint.method == "POST"
        assert endpoint.path == "message/sendText/{instance}"
        assert endpoint.operation_class == "messages"
        assert endpoint.instance_scoped

    def test_media_operations(self):
        assert get_endpoint("message.send_media").operation_class == "media"
        assert get_endpoint("message.send_audio").operation_class == "media"

    def test_unscoped_operation(self):
        endpoint = get_endpoint("instance.fetch_instances")
        assert endpoint.method == "GET"
        assert not endpoint.instance_scoped

    def test_unknown_operation(self):
        with pytest.raises(KeyError):
            get_endpoint("message.teleport")

    def test_all_methods_are_valid(self):
        assert {e.method for e in ENDPOINTS.values()} <= {"GET", "POST", "PUT", "PATCH", "DELETE"}

    def test_operations_by_prefix(self):
        names = {e.name for e in operations("webhook")}
        assert names == {"webhook.set", "webhook.find"}


class TestInferOperationClass:
    @pytest.mark.parametrize(
        "path, expected",
        [
            ("message/sendText/main", "messages"),
            ("/message/sendMedia/main", "media"),
            ("message/sendWhatsAppAudio/main", "media"),
            ("custom/sendImage", "media"),
            ("custom/sendSomething", "messages"),
            ("chat/findChats/main", "default"),
            ("instance/fetchInstances", "default"),
            ("group/updatePicture/main", "media"),
        ],
    )
    def test_paths(self, path, expected):
        assert infer_operation_class(path) == expected

    def test_query_string_ignored(self):
        assert infer_operation_class("chat/findChats/main?limit=5") == "default"


class TestRenderPath:
    def test_fills_instance(self):
        assert render_path("message/sendText/{instance}", "main") == "message/sendText/main"

    def test_no_placeholder(self):
        assert render_path("instance/fetchInstances") == "instance/fetchInstances"

    def test_missing_instance(self):
        with pytest.raises(NotFoundError):
            render_path("message/sendText/{instance}", None)
