"""
Entrada principal del reproductor de películas.
Reproduce una película (JSON) en la terminal: subtítulos, bocadillos y audio.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel

from .audio.channel import FfplaySink
from .config import load_settings
from .director.parser import MovieParser, MovieValidationError
from .domain.models import AudioMode
from .orchestrator import MoviePlayer
from .playback.presentation import GENERATING_PLACEHOLDER, project_frame
from .tts.edge_tts import EdgeSpeechBackend, SPANISH_VOICES
from .tts.speech import EdgeLiveSynthesizer
from .utils.cache import SpeechClipCache

console = Console()

DEMO_MOVIE = """
{
    "title": "El Faro",
    "summary": "Dos hermanos suben al faro la noche de la tormenta.",
    "style": "cinematic",
    "audioMode": "generated",
    "aspectRatio": "16:9",
    "scenes": [
        {
            "id": "s1",
            "duration": 6,
            "description": "La tormenta golpea la costa mientras Lucía y Tomás corren hacia el faro.",
            "characters": [{"id": "c1", "name": "Lucía"}, {"id": "c2", "name": "Tomás"}],
            "script": [
                {"characterId": "c1", "text": "¡La luz se ha apagado!"},
                {"characterId": "c2", "text": "Tenemos que subir antes de que llegue el barco."}
            ]
        },
        {
            "id": "s2",
            "duration": 5,
            "description": "Dentro, la escalera de caracol parece no tener fin.",
            "characters": [{"id": "c1", "name": "Lucía"}, {"id": "c2", "name": "Tomás"}],
            "script": [
                {"characterId": "c2", "text": "Cuenta los escalones conmigo."}
            ]
        },
        {
            "id": "s3",
            "duration": 4,
            "description": "La lámpara vuelve a girar y el barco cambia de rumbo.",
            "characters": [],
            "script": []
        }
    ]
}
"""


class ConsoleRenderer:
    """Imprime cada cambio de cuadro (subtítulo, bocadillo, estado)."""

    def __init__(self, movie):
        self.movie = movie
        self._last = None

    def __call__(self, snapshot) -> None:
        frame = project_frame(self.movie, snapshot)
        key = (frame.scene_number, frame.subtitle, frame.speaker, frame.bubble, frame.preparing_audio, frame.finished)
        if key == self._last:
            return
        self._last = key

        header = f"[dim]Escena {frame.scene_number}/{frame.scene_count}[/dim]"
        if frame.background == GENERATING_PLACEHOLDER:
            header += " [dim](imagen en generación)[/dim]"
        if frame.finished:
            console.print("[bold green]✓ Fin[/bold green]")
        elif frame.preparing_audio:
            console.print(f"{header} [yellow]⏳ Preparando audio...[/yellow]")
        elif frame.bubble is not None:
            console.print(f"{header} 💬 [bold]{frame.speaker}[/bold]: {frame.bubble}")
        elif frame.subtitle:
            console.print(f"{header} 🎙️ [italic]\"{frame.subtitle}\"[/italic]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reproductor de películas generadas")
    parser.add_argument("movie", nargs="?", help="Archivo JSON de la película (demo si se omite)")
    parser.add_argument("--config", type=str, help="Ruta al config.yaml")
    parser.add_argument("--mode", choices=[m.value for m in AudioMode], help="Forzar modo de audio")
    parser.add_argument("--no-audio", action="store_true", help="Sin audio: ritmo estimado por texto")
    parser.add_argument("--speakers", action="store_true", help="Reproducir el audio con ffplay")
    parser.add_argument("--list-voices", action="store_true", help="Listar voces disponibles")
    parser.add_argument("-v", "--verbose", action="store_true", help="Logging detallado")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # Configurar logging
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.list_voices:
        console.print("[cyan]Voces disponibles en español:[/cyan]\n")
        for voice_id, description in SPANISH_VOICES.items():
            console.print(f"  {voice_id}: {description}")
        return 0

    settings = load_settings(args.config)

    raw = Path(args.movie).read_text(encoding="utf-8") if args.movie else DEMO_MOVIE
    try:
        movie = MovieParser().parse(raw)
    except MovieValidationError as e:
        console.print(f"[red]✗ Película inválida: {e}[/red]")
        return 1

    if args.mode:
        movie = movie.model_copy(update={"audio_mode": AudioMode(args.mode)})

    clip_cache = None
    if settings.speech_cache_dir:
        clip_cache = SpeechClipCache(settings.speech_cache_dir, settings.speech_cache_ttl_hours)

    backend = EdgeSpeechBackend(
        rate=settings.tts_rate,
        pitch=settings.tts_pitch,
        clip_cache=clip_cache,
        sample_rate=settings.sample_rate,
        channels=settings.channels,
        sample_width=settings.sample_width,
    )

    player = MoviePlayer(
        movie,
        settings=settings,
        backend=backend,
        synthesizer_factory=lambda channel: EdgeLiveSynthesizer(
            channel,
            voice=settings.voices.narrator,
            rate=settings.tts_rate,
            pitch=settings.tts_pitch,
        ),
        sink=FfplaySink() if args.speakers else None,
    )

    console.print(Panel(
        f"[bold cyan]{movie.title}[/bold cyan]\n"
        f"{movie.summary}\n"
        f"Escenas: {movie.scene_count} | Modo de audio: {movie.audio_mode.value}",
        title="🎬 Reproductor"
    ))

    async def run():
        controller = player.open_session()
        controller.subscribe(ConsoleRenderer(movie))
        if args.no_audio:
            controller.set_audio_enabled(False)
        controller.play()
        try:
            await controller.wait_finished()
        finally:
            player.close()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[yellow]Reproducción interrumpida[/yellow]")
        return 130
    finally:
        if clip_cache:
            clip_cache.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
