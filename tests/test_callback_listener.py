"""Tests for the OAuth callback listener on a real loopback socket."""

import threading

import pytest
import requests

from mailscan.auth import (
    AuthorizationDeniedError,
    AuthorizationError,
    AuthorizationTimeoutError,
    CallbackListener,
)


def _request_in_background(urls):
    """GET each URL in order from a worker thread, collecting responses."""
    responses = []

    def run():
        for url in urls:
            responses.append(requests.get(url, timeout=5))

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread, responses


def _listener(timeout=5.0):
    return CallbackListener(port=0, path="/oauth/callback", timeout=timeout, poll_interval=0.05)


class TestCallbackListener:
    def test_captures_code_and_stops_listening(self):
        with _listener() as listener:
            base = f"http://127.0.0.1:{listener.port}"
            thread, responses = _request_in_background([f"{base}/oauth/callback?code=abc123"])
            code = listener.wait_for_code()
            thread.join(timeout=5)

            assert code == "abc123"
            assert responses[0].status_code == 200
            assert "Authorization Successful" in responses[0].text
            assert not listener.is_listening

            with pytest.raises(requests.ConnectionError):
                requests.get(f"{base}/oauth/callback?code=second", timeout=2)

    def test_missing_code_is_denied(self):
        with _listener() as listener:
            url = f"http://127.0.0.1:{listener.port}/oauth/callback"
            thread, responses = _request_in_background([url])
            with pytest.raises(AuthorizationDeniedError):
                listener.wait_for_code()
            thread.join(timeout=5)

        assert responses[0].status_code == 400
        assert "No code received" in responses[0].text

    def test_provider_error_is_reported(self):
        with _listener() as listener:
            url = f"http://127.0.0.1:{listener.port}/oauth/callback?error=access_denied"
            thread, _ = _request_in_background([url])
            with pytest.raises(AuthorizationDeniedError) as exc_info:
                listener.wait_for_code()
            thread.join(timeout=5)

        assert exc_info.value.reason == "access_denied"

    def test_other_paths_are_ignored(self):
        with _listener() as listener:
            base = f"http://127.0.0.1:{listener.port}"
            thread, responses = _request_in_background(
                [f"{base}/favicon.ico", f"{base}/oauth/callback?code=xyz"]
            )
            code = listener.wait_for_code()
            thread.join(timeout=5)

        assert code == "xyz"
        assert responses[0].status_code == 404
        assert responses[1].status_code == 200

    def test_timeout(self):
        listener = _listener(timeout=0.2)
        with listener:
            with pytest.raises(AuthorizationTimeoutError):
                listener.wait_for_code()
            assert not listener.is_listening

    def test_context_exit_closes_socket(self):
        with pytest.raises(RuntimeError):
            with _listener() as listener:
                assert listener.is_listening
                raise RuntimeError("interrupted")
        assert not listener.is_listening

    def test_port_in_use(self):
        with _listener() as first:
            second = CallbackListener(port=first.port)
            with pytest.raises(AuthorizationError, match="Could not listen"):
                second.start()

    def test_port_requires_running_listener(self):
        with pytest.raises(RuntimeError):
            _ = _listener().port

    def test_ipv6_loopback(self):
        listener = CallbackListener(
            port=0, path="/oauth/callback", host="::1", timeout=5.0, poll_interval=0.05
        )
        try:
            listener.start()
        except AuthorizationError:
            pytest.skip("IPv6 loopback not available")
        with listener:
            thread, responses = _request_in_background(
                [f"http://[::1]:{listener.port}/oauth/callback?code=v6"]
            )
            assert listener.wait_for_code() == "v6"
            thread.join(timeout=5)
        assert responses[0].status_code == 200
