import pytest

from tensor_bridge.backend import device as device_mod
from tensor_bridge.backend.device import (
    cpu_device,
    cpu_torch_device,
    devices_compatible,
    gpu_device,
    parse_device,
    use_default_device,
)
from tensor_bridge.errors import UnsupportedDevice


def test_default_device_falls_back_to_cpu(monkeypatch):
    monkeypatch.setattr(device_mod, "DEFAULT_DEVICE_OVERRIDE", "")
    monkeypatch.setattr(device_mod, "_default_device", None)
    monkeypatch.setattr("torch.cuda.is_available", lambda: False)
    assert use_default_device() == cpu_device()


def test_default_device_prefers_gpu(monkeypatch):
    monkeypatch.setattr(device_mod, "DEFAULT_DEVICE_OVERRIDE", "")
    monkeypatch.setattr(device_mod, "_default_device", None)
    monkeypatch.setattr("torch.cuda.is_available", lambda: True)
    assert use_default_device() == gpu_device(0)


def test_env_override(monkeypatch):
    monkeypatch.setattr(device_mod, "DEFAULT_DEVICE_OVERRIDE", "cpu_torch")
    monkeypatch.setattr(device_mod, "_default_device", None)
    assert use_default_device() == cpu_torch_device()


def test_set_default_device(monkeypatch):
    monkeypatch.setattr(device_mod, "_default_device", None)
    device_mod.set_default_device(cpu_torch_device())
    assert use_default_device() == cpu_torch_device()


def test_parse_device():
    assert parse_device("cpu") == cpu_device()
    assert parse_device("GPU:1") == gpu_device(1)
    with pytest.raises(UnsupportedDevice):
        parse_device("tpu")


def test_compatibility():
    assert devices_compatible(cpu_device(), cpu_torch_device())
    assert not devices_compatible(cpu_device(), gpu_device(0))
    assert not devices_compatible(gpu_device(0), gpu_device(1))
    assert devices_compatible(gpu_device(1), gpu_device(1))
