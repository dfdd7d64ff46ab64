import argparse
import os
import sys
import threading
import time

import numpy as np

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from talknotes.audio_utils import encode_wav
from talknotes.errors import DeviceError
from talknotes.recorder import MicrophoneStream, find_input_device


def _describe_device(info: dict) -> None:
    print(f"Input device: {info.get('name', '')}")
    print(f"Index: {info.get('index', '')}")
    print(f"Host API: {info.get('hostapi', '')}")
    print(f"Max input channels: {info.get('max_input_channels', 0)}")
    print(f"Default sample rate: {info.get('default_samplerate', '')}")


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--device", help="Device name substring.")
    parser.add_argument("--seconds", type=float, default=6.0, help="Test duration.")
    parser.add_argument("--rate", type=int, default=16000, help="Sample rate.")
    parser.add_argument("--channels", type=int, default=1, help="Channels.")
    args = parser.parse_args()

    try:
        info = find_input_device(args.device)
    except DeviceError as exc:
        print(f"Device error: {exc.message}")
        return 1
    _describe_device(info)

    chunks = []
    levels = {"rms": [], "peaks": []}
    lock = threading.Lock()

    def _on_chunk(chunk):
        chunks.append(chunk)
        data = chunk.astype("float32") / 32768.0
        rms_vals = np.sqrt(np.mean(data**2, axis=0)).tolist()
        peak_vals = np.max(np.abs(data), axis=0).tolist()
        with lock:
            levels["rms"] = rms_vals
            levels["peaks"] = peak_vals

    stream = MicrophoneStream(
        _on_chunk,
        sample_rate_hz=args.rate,
        channels=args.channels,
        device_name=info.get("name"),
    )
    try:
        stream.open()
    except DeviceError as exc:
        print(f"Device error: {exc.message} {exc.detail or ''}")
        return 1
    print("Streaming... press Ctrl+C to stop early.")

    end = time.time() + args.seconds
    try:
        while time.time() < end:
            with lock:
                rms_vals = list(levels["rms"])
                peak_vals = list(levels["peaks"])
            if rms_vals:
                rms_str = " ".join(f"{v:.3f}" for v in rms_vals)
                peak_str = " ".join(f"{v:.3f}" for v in peak_vals)
                print(f"RMS [{rms_str}] | Peaks [{peak_str}]")
            else:
                print("No samples yet...")
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        stream.close()

    payload = encode_wav(chunks, sample_rate_hz=args.rate, channels=args.channels)
    print(f"Payload: {len(payload.data)} bytes, {payload.duration_seconds:.2f}s")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
