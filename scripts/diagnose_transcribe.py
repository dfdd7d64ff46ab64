import argparse
import os
import sys
import time

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from talknotes.config import load_config, resolve_api_key
from talknotes.errors import RemoteError
from talknotes.models import AudioPayload
from talknotes.result_parser import parse_result
from talknotes.transcriber import TranscriptionClient


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("audio_path", help="Path to a WAV file to transcribe.")
    parser.add_argument("--config", default="talknotes_config.yml", help="Config.")
    parser.add_argument("--mode", choices=["note", "todo"], default="note")
    parser.add_argument("--model", help="Override the configured model.")
    args = parser.parse_args()

    cfg = load_config(args.config)
    with open(args.audio_path, "rb") as handle:
        payload = AudioPayload(data=handle.read(), mime_type="audio/wav")

    client = TranscriptionClient(
        api_key=resolve_api_key(cfg),
        model=args.model or cfg.transcription.model,
        base_url=cfg.transcription.base_url,
        timeout_seconds=cfg.transcription.timeout_seconds,
    )
    started = time.time()
    try:
        raw = client.transcribe(payload, args.mode)
    except RemoteError as exc:
        print(f"Remote error: {exc.message}")
        if exc.detail:
            print(exc.detail)
        return 1
    finally:
        client.close()
    elapsed = time.time() - started

    result = parse_result(raw)
    print(f"Raw: {raw}")
    print(f"Title: {result.title}")
    print(f"Transcription: {result.transcription}")
    print(f"Elapsed: {elapsed:.2f}s")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
