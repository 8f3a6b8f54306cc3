import pytest

from wfibe.authority import KeyAuthority
from wfibe.config import Settings
from wfibe.errors import ConfigError
from wfibe.params import load_public_params
from wfibe.protocol import KeyRequest, KeyResponse


def test_serves_concurrent_requests():
    with KeyAuthority(n=6, m=6, workers=4) as kgc:
        futures = [kgc.submit(KeyRequest([f"a{i}", "b"], {"b": i}, client_id=f"c{i}"))
                   for i in range(12)]
        responses = [f.result(timeout=60) for f in futures]
        stats = kgc.statistics()

    assert all(r.success for r in responses)
    assert len({r.request_id for r in responses}) == 12
    assert len({r.key_size for r in responses}) == 1
    assert stats["total_requests"] == 12
    assert stats["successful"] == 12
    assert stats["success_rate"] == 100.0


def test_bad_request_is_answered_not_raised():
    with KeyAuthority(n=4, m=4, workers=2) as kgc:
        resp = kgc.submit(KeyRequest(["a"], {"b": "not-a-weight"})).result(timeout=60)
        good = kgc.handle(KeyRequest(["a"], {"b": 1}))
        stats = kgc.statistics()
    assert not resp.success and resp.secret_key is None and resp.error_message
    assert good.success
    assert stats["failed"] == 1 and stats["successful"] == 1


def test_setup_failure_is_fatal():
    kgc = KeyAuthority(n=0, m=4)
    with pytest.raises(ConfigError):
        kgc.start()
    assert not kgc.running
    with pytest.raises(RuntimeError):
        kgc.handle(KeyRequest(["a"], {"a": 1}))


def test_worker_pool_must_be_positive():
    with pytest.raises(ConfigError):
        KeyAuthority(n=4, m=4, workers=0)


def test_submit_after_stop():
    kgc = KeyAuthority(n=3, m=3, workers=1)
    kgc.start()
    kgc.stop()
    with pytest.raises(RuntimeError):
        kgc.submit(KeyRequest(["a"], {"a": 1}))


def test_setup_runs_once():
    kgc = KeyAuthority(n=3, m=3, workers=1)
    first = kgc.start()
    assert kgc.start() is first
    kgc.stop()


def test_export_and_frame_handling(tmp_path):
    with KeyAuthority(n=5, m=4, workers=1) as kgc:
        path = str(tmp_path / "pp.json")
        kgc.export_public_parameters(path)
        reply = KeyResponse.from_dict(
            kgc.handle_dict(KeyRequest(["x"], {"y": 2}, client_id="pc2").to_dict())
        )
    pp = load_public_params(path)
    assert (pp.n, pp.m) == (5, 4)
    assert reply.success and reply.secret_key is not None


def test_from_settings(monkeypatch):
    monkeypatch.setenv("WFIBE_N", "7")
    monkeypatch.setenv("WFIBE_M", "3")
    monkeypatch.setenv("WFIBE_KEY_WORKERS", "2")
    kgc = KeyAuthority.from_settings(Settings.from_env())
    assert (kgc.n, kgc.m, kgc.workers) == (7, 3, 2)
