"""
FastAPI web server for chord detection with WebSocket audio streaming.

The browser captures the microphone with an AudioWorklet and streams Float32
chunks over /ws; each connection runs its own DetectionPipeline.
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path

import numpy as np
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, FileResponse
from fastapi.staticfiles import StaticFiles

from chord_listener.common import RATE
from chord_listener.config import DetectorConfig
from chord_listener.errors import AcquisitionError
from chord_listener.features import create_extractor
from chord_listener.output import DictOutputHandler
from chord_listener.pipeline import DetectionPipeline
from chord_listener.producers import PushProducer

BASE_DIR = Path(__file__).resolve().parent

# Global server log level (can be set via --log-level or CHORD_LISTENER_LOG_LEVEL env var)
SERVER_LOG_LEVEL = os.environ.get("CHORD_LISTENER_LOG_LEVEL", "INFO").upper()

logger = logging.getLogger("chord_listener.web")

app = FastAPI(title="Chord Listener Web Service")
app.state.extractor_factory = create_extractor

if (BASE_DIR / "static").is_dir():
    app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")

# Pipelines of open connections
active_connections: dict[str, DetectionPipeline] = {}


def parse_config(message: str) -> DetectorConfig:
    """Parse the client's initial JSON configuration message."""
    try:
        data = json.loads(message) if message else {}
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed configuration message")
        data = {}
    if not isinstance(data, dict):
        data = {}
    try:
        sample_rate = int(data.get('sample_rate') or RATE)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid sample rate: %r", data.get('sample_rate'))
        sample_rate = RATE
    config = {
        'sample_rate': sample_rate,
        'show_chroma': bool(data.get('show_chroma', False)),
        'debug': bool(data.get('debug', False)),
    }
    return DetectorConfig(config)


def create_pipeline(config: DetectorConfig, output_handler: DictOutputHandler) -> DetectionPipeline:
    """Build a pipeline fed by a PushProducer for one connection."""
    producer = PushProducer(sample_rate=config.sample_rate)
    return DetectionPipeline(
        producer,
        config,
        extractor_factory=app.state.extractor_factory,
        output_handler=output_handler,
    )


@app.get("/")
async def get_index():
    """Serve the main HTML page."""
    index = BASE_DIR / "templates" / "index.html"
    if index.is_file():
        return FileResponse(index)
    return HTMLResponse(content="""
    <!DOCTYPE html>
    <html>
    <head><title>Chord Listener</title></head>
    <body>
        <h1>Chord Listener</h1>
        <p>Please ensure templates/index.html exists</p>
    </body>
    </html>
    """)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "connections": len(active_connections)}


async def send_pending(websocket: WebSocket, output_handler: DictOutputHandler):
    for message in output_handler.pop_messages():
        await websocket.send_json(message)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for audio streaming and chord detection."""
    await websocket.accept()
    connection_id = f"{websocket.client.host}:{id(websocket)}" if websocket.client else str(id(websocket))
    pipeline = None

    try:
        config = parse_config(await websocket.receive_text())
        output_handler = DictOutputHandler(config)
        pipeline = create_pipeline(config, output_handler)

        try:
            pipeline.start()
        except AcquisitionError as e:
            await websocket.send_json({"type": "error", "message": e.reason})
            await websocket.close()
            return

        active_connections[connection_id] = pipeline
        logger.info("New connection: %s (%s Hz)", connection_id, config.sample_rate)
        await websocket.send_json({
            "type": "connected",
            "config": config.to_dict(),
            "server_log_level": SERVER_LOG_LEVEL,
        })
        await send_pending(websocket, output_handler)

        audio_chunk_count = 0
        while True:
            message = await websocket.receive()
            if message.get("type") == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            if message.get("bytes") is not None:
                audio_chunk_count += 1
                audio_chunk = np.frombuffer(message["bytes"], dtype=np.float32)
                if audio_chunk_count <= 5:
                    logger.debug("Audio chunk #%s: %s samples (%s)",
                                 audio_chunk_count, len(audio_chunk), connection_id)
                pipeline.producer.push(audio_chunk)
                await send_pending(websocket, output_handler)
                continue

            try:
                text_data = json.loads(message.get("text") or "{}")
            except json.JSONDecodeError:
                logger.warning("Ignoring malformed message from %s", connection_id)
                continue
            if not isinstance(text_data, dict):
                logger.warning("Ignoring non-object message from %s", connection_id)
                continue

            command = text_data.get("type")
            if command == "stop":
                pipeline.stop()
            elif command == "start":
                try:
                    pipeline.start()
                except AcquisitionError as e:
                    await websocket.send_json({"type": "error", "message": e.reason})
            elif command == "result":
                await websocket.send_json(pipeline.current_result().to_dict())
            await send_pending(websocket, output_handler)

    except WebSocketDisconnect:
        logger.debug("Disconnected: %s", connection_id)
    finally:
        if pipeline is not None:
            pipeline.stop()
        active_connections.pop(connection_id, None)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='FastAPI web server for chord detection')
    parser.add_argument('--host', type=str, default='0.0.0.0', help='Host to bind to (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, default=9103, help='Port to bind to (default: 9103)')
    parser.add_argument('--reload', action='store_true', help='Enable auto-reload for development')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level for server (default: INFO). Use DEBUG for verbose output.')
    return parser.parse_args()


if __name__ == "__main__":
    import uvicorn
    args = parse_args()

    # Environment variable so reload workers pick up the level too
    os.environ["CHORD_LISTENER_LOG_LEVEL"] = args.log_level.upper()
    SERVER_LOG_LEVEL = args.log_level.upper()
    logging.basicConfig(
        level=SERVER_LOG_LEVEL,
        format='[%(asctime)s] %(levelname)s %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr,
    )

    print(f"🚀 Starting Chord Listener Web Server on {args.host}:{args.port}")
    print(f"📡 WebSocket endpoint: ws://{args.host}:{args.port}/ws")
    print(f"🌐 Web interface: http://{args.host}:{args.port}/")

    uvicorn.run(
        "web_server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )
