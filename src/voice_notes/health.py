import logging
from dataclasses import dataclass
from pathlib import Path

import sounddevice as sd

from voice_notes.config import VoiceNotesConfig

logger = logging.getLogger(__name__)

CRITICAL_CHECKS = {"audio_device", "api_keys"}


@dataclass
class HealthCheckResult:
    name: str
    passed: bool
    detail: str


def run_startup_checks(config: VoiceNotesConfig) -> list[HealthCheckResult]:
    results = [
        _check_api_keys(config),
        _check_audio_device(config),
        _check_output_dir(config),
    ]

    passed = sum(1 for r in results if r.passed)
    logger.info("Health check: %d/%d passed", passed, len(results))
    for result in results:
        level = logging.INFO if result.passed else logging.WARNING
        symbol = "OK" if result.passed else "FAIL"
        logger.log(level, "  [%s] %s: %s", symbol, result.name, result.detail)

    return results


def has_critical_failures(results: list[HealthCheckResult]) -> bool:
    return any(not r.passed and r.name in CRITICAL_CHECKS for r in results)


def _check_api_keys(config: VoiceNotesConfig) -> HealthCheckResult:
    name = "api_keys"
    missing = [key for key, value in config.required_credentials().items() if not value]
    if missing:
        return HealthCheckResult(name=name, passed=False, detail=f"Missing: {', '.join(missing)}")
    return HealthCheckResult(name=name, passed=True, detail="All API keys loaded")


def _check_audio_device(config: VoiceNotesConfig) -> HealthCheckResult:
    name = "audio_device"
    try:
        device_name = config.capture_device
        if device_name:
            for dev in sd.query_devices():
                if device_name.lower() in dev["name"].lower() and dev["max_input_channels"] > 0:
                    return HealthCheckResult(name=name, passed=True, detail=f"Device '{device_name}' found")

        default = sd.query_devices(kind="input")
        if device_name:
            detail = f"'{device_name}' not in PortAudio (will use PIPEWIRE_NODE), default input: {default['name']}"
        else:
            detail = f"Default input: {default['name']}"
        return HealthCheckResult(name=name, passed=True, detail=detail)
    except sd.PortAudioError:
        return HealthCheckResult(name=name, passed=False, detail="No input devices available")
    except Exception as exc:
        return HealthCheckResult(name=name, passed=False, detail=str(exc))


def _check_output_dir(config: VoiceNotesConfig) -> HealthCheckResult:
    name = "output_dir"
    output_dir = Path(config.output_dir)
    if output_dir.exists() and not output_dir.is_dir():
        return HealthCheckResult(name=name, passed=False, detail=f"{output_dir} is not a directory")
    return HealthCheckResult(name=name, passed=True, detail=f"Artifacts go to {output_dir.resolve()}")
