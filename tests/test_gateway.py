import unittest
from unittest.mock import MagicMock

import requests

from leetmentor.gateway import EMPTY_REPLY, GatewayError, ModelGateway, extract_text


def _response(status=200, body=None, text=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    response.text = text if text is not None else ""
    return response


class TestExtractText(unittest.TestCase):
    def test_proxy_envelope(self):
        self.assertEqual(extract_text({"text": " Think about sorting. "}), "Think about sorting.")

    def test_message_content_string(self):
        payload = {"choices": [{"message": {"role": "assistant", "content": "Use a hash map."}}]}
        self.assertEqual(extract_text(payload), "Use a hash map.")

    def test_message_content_parts(self):
        payload = {"choices": [{"message": {"content": [
            {"type": "text", "text": "First part."},
            {"type": "text", "text": "Second part."},
        ]}}]}
        self.assertEqual(extract_text(payload), "First part.\nSecond part.")

    def test_message_content_value(self):
        payload = {"choices": [{"message": {"content": {"value": "Boxed."}}}]}
        self.assertEqual(extract_text(payload), "Boxed.")

    def test_choice_text(self):
        self.assertEqual(extract_text({"choices": [{"text": "Legacy completion"}]}), "Legacy completion")

    def test_bare_completion(self):
        self.assertEqual(extract_text({"completion": "Bare"}), "Bare")
        self.assertEqual(extract_text([{"generated_text": "HF style"}]), "HF style")

    def test_error_body(self):
        self.assertEqual(extract_text({"error": "overloaded"}), "Model error: overloaded")

    def test_unknown_shape_is_serialized(self):
        self.assertEqual(extract_text({"weird": [1, 2]}), '{"weird": [1, 2]}')

    def test_never_returns_none(self):
        for payload in (None, {}, {"text": ""}, {"choices": []}, [], "", 0):
            text = extract_text(payload)
            self.assertIsInstance(text, str)
            self.assertTrue(text)
        self.assertEqual(extract_text({"text": "   "}), EMPTY_REPLY)


class TestModelGateway(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.session.headers = {}

    def test_proxy_payload_relabels_model(self):
        gateway = ModelGateway(endpoint="http://mentor/api", mode="proxy", session=self.session)
        payload = gateway.build_payload([
            ("system", "rules"), ("user", "hi"), ("model", "hello"), ("user", ""),
        ])
        self.assertEqual(payload, {"contents": [
            {"role": "system", "parts": [{"text": "rules"}]},
            {"role": "user", "parts": [{"text": "hi"}]},
            {"role": "assistant", "parts": [{"text": "hello"}]},
        ]})

    def test_chat_payload_and_auth_header(self):
        gateway = ModelGateway(endpoint="http://vendor/v1/chat/completions", mode="chat",
                               api_key="secret", model="tiny", session=self.session)
        self.session.post.return_value = _response(body={"choices": [{"message": {"content": "ok"}}]})

        self.assertEqual(gateway.generate([("user", "q"), ("model", "a"), ("mystery", "b")]), "ok")

        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], "http://vendor/v1/chat/completions")
        self.assertEqual(kwargs["json"]["model"], "tiny")
        self.assertEqual(kwargs["json"]["messages"], [
            {"role": "user", "content": "q"},
            {"role": "assistant", "content": "a"},
            {"role": "user", "content": "b"},
        ])
        self.assertIn("max_tokens", kwargs["json"])
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer secret")

    def test_proxy_mode_sends_no_auth(self):
        gateway = ModelGateway(endpoint="http://mentor/api", mode="proxy", api_key="secret",
                               session=self.session)
        self.session.post.return_value = _response(body={"text": "hint"})
        self.assertEqual(gateway.ask("help"), "hint")
        _, kwargs = self.session.post.call_args
        self.assertNotIn("Authorization", kwargs["headers"])

    def test_non_2xx_raises(self):
        gateway = ModelGateway(endpoint="http://mentor/api", session=self.session)
        self.session.post.return_value = _response(
            status=502, body={"error": "Model error 503", "detail": "busy"})
        with self.assertRaises(GatewayError) as ctx:
            gateway.generate([("user", "hi")])
        self.assertEqual(ctx.exception.status, 502)
        self.assertEqual(ctx.exception.detail, "Model error 503: busy")

    def test_network_error_raises(self):
        gateway = ModelGateway(endpoint="http://mentor/api", session=self.session)
        self.session.post.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(GatewayError):
            gateway.generate([("user", "hi")])
        self.assertEqual(self.session.post.call_count, 1)

    def test_non_json_success_body(self):
        gateway = ModelGateway(endpoint="http://mentor/api", session=self.session)
        self.session.post.return_value = _response(text="plain words")
        self.assertEqual(gateway.generate([("user", "hi")]), "plain words")

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            ModelGateway(mode="carrier-pigeon", session=self.session)


if __name__ == "__main__":
    unittest.main()
