"""HTTP trigger for scheduled watcher runs."""

import logging
import os
from pathlib import Path

from flask import Flask, current_app, jsonify

from ..config import get_env, load_config
from ..main import AuctionWatcher
from ..models.listing import records_to_json
from ..services.snapshot_store import StoreError
from ..utils.logging import setup_logging_from_config

logger = logging.getLogger(__name__)

app = Flask(__name__)


def get_config():
    """Load config from CONFIG_PATH, falling back to defaults if the file is absent."""
    config_path = get_env("CONFIG_PATH", "./config/config.yaml")
    if not Path(config_path).exists():
        logger.info(f"No config at {config_path}, using defaults")
        config_path = None
    return load_config(config_path)


def get_watcher() -> AuctionWatcher:
    """Watcher for this request. Tests inject one via app.config['WATCHER']."""
    watcher = current_app.config.get("WATCHER")
    if watcher is None:
        watcher = AuctionWatcher(get_config())
    return watcher


@app.route('/run', methods=['GET', 'POST'])
def run():
    """Execute one watcher run and return its payload."""
    logger.info("Scraper triggered via HTTP")
    result = get_watcher().run_once()

    if result.skipped:
        status = 409
    elif not result.success:
        status = 500
    else:
        status = 200
    return jsonify(result.to_payload()), status


@app.route('/api/snapshot')
def api_snapshot():
    """Return the stored snapshot."""
    try:
        records = get_watcher().store.load()
    except StoreError as e:
        return jsonify({'error': str(e)}), 503

    if records is None:
        return jsonify({'error': 'No snapshot stored yet'}), 404
    return jsonify(records_to_json(records))


@app.route('/health')
def health():
    return jsonify({'status': 'ok'})


if __name__ == '__main__':
    setup_logging_from_config(get_config())
    port = int(os.environ.get('PORT', 5000))
    print(f"Starting server at http://0.0.0.0:{port}")
    app.run(host='0.0.0.0', port=port)
