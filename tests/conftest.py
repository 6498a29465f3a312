import asyncio
import base64

import pytest

from movieplayer.config import PlaybackSettings
from movieplayer.domain.models import AudioMode, Movie
from movieplayer.playback.strategies import AudioSourceStrategy


class FakeClock:
    """Reloj virtual: sleep() avanza el tiempo sin esperar de verdad."""

    def __init__(self, hold=None):
        self.now = 0.0
        self.sleeps = []
        self.hold = hold
        self.release = asyncio.Event()

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds
        if self.hold and self.hold(seconds):
            await self.release.wait()
        await asyncio.sleep(0)

    def __call__(self):
        return self.now


class RecordingSink:
    def __init__(self):
        self.started = []
        self.stops = 0

    def start(self, segment):
        self.started.append(segment)

    def stop(self):
        self.stops += 1


class RecordingStrategy(AudioSourceStrategy):
    """Estrategia de prueba: registra cada speak y puede bloquear claves concretas."""

    def __init__(self, settings, mode=AudioMode.ON_DEVICE, block=None):
        super().__init__(settings)
        self.mode = mode
        self.calls = []
        self.block = set(block or ())
        self.stops = 0

    async def _speak(self, text, key):
        self.calls.append(key)
        while key in self.block:
            await asyncio.sleep(0.001)
        await asyncio.sleep(0)

    def stop_current(self):
        self.stops += 1


class FakeBackend:
    """Backend de síntesis que mide la concurrencia de peticiones."""

    def __init__(self, payload=None, fail_texts=(), gate=None):
        self.payload = payload if payload is not None else pcm_payload(0.5)
        self.fail_texts = set(fail_texts)
        self.gate = gate
        self.calls = []
        self.events = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def synthesize(self, text, voice):
        self.calls.append((text, voice))
        self.events.append("start")
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            for _ in range(3):
                await asyncio.sleep(0)
        finally:
            self.in_flight -= 1
            self.events.append("end")
        if text in self.fail_texts:
            return None
        return self.payload


def pcm_payload(seconds=1.0, sample_rate=24000):
    frames = int(seconds * sample_rate)
    return base64.b64encode(b"\x00\x00" * frames).decode("ascii")


def make_movie(lines_per_scene=(2, 0, 1), mode="generated", descriptions=None, **extra):
    scenes = []
    for i, count in enumerate(lines_per_scene):
        description = descriptions[i] if descriptions is not None else f"Narración de la escena {i}"
        scenes.append({
            "id": f"s{i}",
            "description": description,
            "characters": [{"id": "c1", "name": "Ana"}, {"id": "c2", "name": "Pedro"}],
            "script": [
                {"characterId": "c1" if j % 2 == 0 else "c2", "text": f"Línea {i}.{j}"}
                for j in range(count)
            ],
        })
    return Movie.model_validate({"title": "Prueba", "audioMode": mode, "scenes": scenes, **extra})


def make_track_movie(intervals=((0, 5), (5, 12), (12, 20))):
    scenes = []
    for i, (start, end) in enumerate(intervals):
        scenes.append({
            "id": f"t{i}",
            "startTime": start,
            "endTime": end,
            "description": f"Escena {i}",
            "script": [{"characterId": "c1", "text": f"Hola {i}"}],
        })
    return Movie.model_validate({"title": "Pista", "audioMode": "external-track", "scenes": scenes})


async def wait_until(predicate, attempts=5000):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.001)
    raise AssertionError("condición no alcanzada")


@pytest.fixture
def settings():
    return PlaybackSettings()
