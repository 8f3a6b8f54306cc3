import json
import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
PY = sys.executable


def _env():
    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join([str(ROOT), env.get("PYTHONPATH", "")])
    return env


def run(args, cwd=None) -> str:
    r = subprocess.run(args, cwd=cwd, env=_env(), capture_output=True, text=True)
    assert r.returncode == 0, (
        f"CMD failed:\n{args}\nSTDOUT:\n{r.stdout}\nSTDERR:\n{r.stderr}"
    )
    return r.stdout


def run_expect_fail(args, cwd=None) -> str:
    r = subprocess.run(args, cwd=cwd, env=_env(), capture_output=True, text=True)
    assert r.returncode != 0, (
        f"Expected fail but succeeded:\n{args}\nSTDOUT:\n{r.stdout}\nSTDERR:\n{r.stderr}"
    )
    return r.stdout + r.stderr


def test_setup_keygen_encrypt(tmp_path):
    keys = tmp_path / "keys"
    pp = str(keys / "public_params.json")
    msk = str(keys / "master_secret.json")
    store = str(tmp_path / "store")
    cli = [PY, "-m", "wfibe.cli"]

    out = run(cli + ["setup", "--n", "8", "--m", "8", "--out", pp, "--secret", msk])
    assert "[PKG] Setup OK" in out

    out = run(cli + ["keygen", "--params", pp, "--secret", msk,
                     "--attrs", "role:doctor,dept:cardio",
                     "--policy", "role:nurse=3,dept:cardio=2",
                     "--out", str(keys / "bob.json")])
    assert "[PKG] KeyGen OK" in out
    key = json.loads((keys / "bob.json").read_text(encoding="utf-8"))
    assert set(key) == {"sk_pa_1", "sk_pa_2", "sk_sb_1", "sk_sb_2"}

    msg = tmp_path / "msg.bin"
    msg.write_bytes(b"sixteen byte msg")
    out = run(cli + ["encrypt", "--params", pp,
                     "--attrs", "role:nurse,dept:cardio",
                     "--policy", "role:doctor=3,dept:cardio=2",
                     "--in", str(msg), "--store", store, "--sender-id", "alice"])
    assert "[SENDER] Encrypt OK" in out
    assert "d=2" in out
    env = json.loads((Path(store) / "alice" / "1.json").read_text(encoding="utf-8"))
    assert env["sender_id"] == "alice" and env["sequence_number"] == 1
    assert env["ciphertext"]["threshold"] == 2


def test_bad_inputs_fail(tmp_path):
    cli = [PY, "-m", "wfibe.cli"]
    out = run_expect_fail(cli + ["setup", "--n", "0", "--m", "4",
                                 "--out", str(tmp_path / "pp.json"),
                                 "--secret", str(tmp_path / "msk.json")])
    assert "must be positive" in out

    out = run_expect_fail(cli + ["encrypt", "--params", str(tmp_path / "missing.json"),
                                 "--attrs", "a", "--policy", "a=1", "--message", "x"])
    assert "[ERROR]" in out

    run_expect_fail(cli + ["keygen", "--params", str(tmp_path / "pp.json"),
                           "--attrs", "a", "--policy", "a", "--out", str(tmp_path / "k.json")])
