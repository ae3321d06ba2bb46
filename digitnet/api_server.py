"""
api_server.py
~~~~~~~~~~~~~

Flask-based REST API server with WebSocket support for network training.

This module provides endpoints for:
- Creating and managing networks from a layer configuration
- Training networks with real-time progress updates via WebSockets
- Classifying input vectors with a network
- Showing correctly and incorrectly classified test digits

The server uses:
- Flask for REST API endpoints
- Flask-SocketIO for WebSocket communication
- Gevent for cooperative background training tasks

Networks live in memory only; they are lost when the server stops.
"""

import base64
import logging
import math
import os
import sys
import uuid
from io import BytesIO
from typing import Any, Dict, List, Optional, Sequence, Tuple

import gevent
import numpy as np
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_socketio import SocketIO

# Use non-GUI backend for matplotlib (required for server environments)
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from digitnet import digit_loader, trainer
from digitnet.config import config_from_dict
from digitnet.errors import ConfigInvalid, SampleUnavailable, ShapeMismatch
from digitnet.logging_setup import configure_logging
from digitnet.network import NetworkTopology
from digitnet.sample import Sample

configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# FLASK APP SETUP
# ============================================================================

app = Flask(__name__)
CORS(app, resources={r"/*": {"origins": "*"}})

is_production = os.getenv('FLASK_ENV') == 'production'

# SocketIO enables real-time communication (WebSockets) for training updates
socketio = SocketIO(
    app,
    cors_allowed_origins="*",
    async_mode='gevent',
    logger=not is_production,
    engineio_logger=not is_production,
    ping_timeout=60,
    ping_interval=25
)

# ============================================================================
# GLOBAL STATE
# ============================================================================

# Default network: 28x28 input, one internal layer, one output per digit
DEFAULT_CONFIG = {
    'input': digit_loader.IMAGE_WIDTH * digit_loader.IMAGE_HEIGHT,
    'internal': [30],
    'output': digit_loader.NUM_CLASSES,
    'rate': 0.1,
    'lambda': 1.0
}

# Networks currently loaded in memory: {network_id: network_info}
active_networks: Dict[str, Dict[str, Any]] = {}

# Training jobs being tracked: {job_id: job_info}
training_jobs: Dict[str, Dict[str, Any]] = {}

# (training_data, test_data), loaded on first use
_datasets: Optional[Tuple[List[Sample], List[Sample]]] = None

# Random source for picking example digits
_example_rng = np.random.default_rng()


# ============================================================================
# DATA LOADING
# ============================================================================

def load_digit_data() -> Tuple[List[Sample], List[Sample]]:
    """
    Load the training and test samples.

    Uses the npz archive named by ``DIGITNET_DATA`` when set, otherwise the
    PGM folders named by ``DIGITNET_TRAINING_DIR`` and ``DIGITNET_TESTING_DIR``.

    Raises:
        SampleUnavailable: If a data source cannot be read
    """
    data_path = os.getenv('DIGITNET_DATA')
    logger.info("Loading digit data...")
    if data_path:
        training_data, test_data = digit_loader.load_npz(data_path)
    else:
        training_data = digit_loader.load_pgm_folder(
            os.getenv('DIGITNET_TRAINING_DIR', 'data/images/training'),
            training=True
        )
        test_data = digit_loader.load_pgm_folder(
            os.getenv('DIGITNET_TESTING_DIR', 'data/images/testing'),
            training=False
        )
    logger.info(
        f"Data loaded: {len(training_data)} training, {len(test_data)} test"
    )
    return training_data, test_data


def get_datasets() -> Tuple[List[Sample], List[Sample]]:
    """Return the cached datasets, loading them on first call."""
    global _datasets
    if _datasets is None:
        _datasets = load_digit_data()
    return _datasets


def is_training(network_id: str) -> bool:
    """True if a job for ``network_id`` is pending or running."""
    active_statuses = ('pending', 'training')
    return any(
        job['network_id'] == network_id and job.get('status') in active_statuses
        for job in training_jobs.values()
    )


# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.route('/api/status', methods=['GET'])
def get_status():
    """
    Return server status and statistics.

    Returns counts of active networks and training jobs that are
    currently in progress (status='pending' or 'training').
    """
    active_statuses = ('pending', 'training')
    active_training = sum(
        1 for job in training_jobs.values()
        if job.get('status') in active_statuses
    )

    return jsonify({
        'status': 'online',
        'active_networks': len(active_networks),
        'training_jobs': active_training
    }), 200


@app.route('/api/networks', methods=['POST'])
def create_network():
    """
    Create a new network.

    Request body (optional):
        {
            'config': {'input': 784, 'internal': [30], 'output': 10,
                       'rate': 0.1, 'lambda': 1.0},
            'seed': 42
        }

    Returns:
        JSON with network_id, architecture, and status
    """
    data = request.get_json(silent=True) or {}
    config_data = data.get('config', DEFAULT_CONFIG)
    seed = data.get('seed')

    if seed is not None and (not isinstance(seed, int) or seed < 0):
        return jsonify({'error': 'seed must be a non-negative integer'}), 400

    try:
        config = config_from_dict(config_data)
    except ConfigInvalid as e:
        logger.warning(f"Invalid configuration requested: {e}")
        return jsonify({'error': f'Invalid configuration: {e}'}), 400

    network_id = str(uuid.uuid4())

    try:
        net = NetworkTopology.build(config, seed=seed)
    except Exception as e:
        logger.exception(f"Error creating network: {e}")
        return jsonify({'error': f'Failed to create network: {str(e)}'}), 500

    active_networks[network_id] = {
        'network': net,
        'architecture': net.sizes,
        'learning_rate': config.learning_rate,
        'lambda': config.sigmoid_lambda,
        'trained': False,
        'accuracy': None
    }

    logger.info(f"Created network {network_id} with architecture {net.sizes}")

    return jsonify({
        'network_id': network_id,
        'architecture': net.sizes,
        'status': 'created'
    }), 201


@app.route('/api/networks/<network_id>/train', methods=['POST'])
def train_network(network_id: str):
    """
    Start training a network in the background.

    Request body (all optional):
        {
            'epochs': 1,
            'max_samples': 60000
        }

    Returns:
        JSON with job_id, network_id, and status
    """
    if network_id not in active_networks:
        logger.warning(f"Training requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    if is_training(network_id):
        return jsonify({'error': 'Network is already training'}), 409

    data = request.get_json(silent=True) or {}
    epochs = data.get('epochs', 1)
    max_samples = data.get('max_samples')

    if not isinstance(epochs, int) or epochs < 1:
        return jsonify({'error': 'epochs must be a positive integer'}), 400
    if max_samples is not None and (not isinstance(max_samples, int) or max_samples < 1):
        return jsonify({'error': 'max_samples must be a positive integer'}), 400

    cleanup_finished_training_jobs(network_id)

    job_id = str(uuid.uuid4())

    training_jobs[job_id] = {
        'network_id': network_id,
        'status': 'pending',
        'progress': 0,
        'epochs': epochs
    }

    logger.info(
        f"Created training job {job_id} for network {network_id}: "
        f"epochs={epochs}, max_samples={max_samples}"
    )

    # Run training in background so we can return immediately
    socketio.start_background_task(
        train_network_task, network_id, job_id, epochs, max_samples
    )

    return jsonify({
        'job_id': job_id,
        'network_id': network_id,
        'status': 'training_started'
    }), 202


def cleanup_finished_training_jobs(network_id: str) -> None:
    """
    Remove completed or failed training jobs of a network from memory.

    Called before a network starts a new job, so at most one job per network
    is kept and training_jobs does not grow with every train request.
    """
    finished_statuses = {'completed', 'failed'}
    jobs_to_remove = [
        job_id for job_id, job_info in training_jobs.items()
        if job_info['network_id'] == network_id
        and job_info.get('status') in finished_statuses
    ]

    for job_id in jobs_to_remove:
        del training_jobs[job_id]

    if jobs_to_remove:
        logger.info(f"Cleaned up {len(jobs_to_remove)} finished training job(s)")


def train_network_task(
    network_id: str,
    job_id: str,
    epochs: int,
    max_samples: Optional[int] = None
) -> None:
    """
    Background task that trains a network.

    Sends progress updates via WebSocket as training progresses.
    """
    net = active_networks[network_id]['network']
    last_update: Dict[str, Any] = {}

    def on_epoch_complete(data: Dict[str, Any]) -> None:
        """Called after each training epoch to send progress updates."""
        last_update.update(data)
        progress = (data['epoch'] / data['total_epochs']) * 100

        training_jobs[job_id]['status'] = 'training'
        training_jobs[job_id]['progress'] = progress

        socketio.emit('training_update', {
            'job_id': job_id,
            'network_id': network_id,
            'epoch': data['epoch'],
            'total_epochs': data['total_epochs'],
            'accuracy': data['accuracy'],
            'elapsed_time': data['elapsed_time'],
            'progress': progress,
            'correct': data.get('correct'),
            'total': data.get('total')
        })

        # Let gevent send the message immediately
        gevent.sleep(0)

    try:
        logger.info(f"Starting training for job {job_id}")
        training_jobs[job_id]['status'] = 'training'

        training_data, test_data = get_datasets()
        if max_samples is not None:
            training_data = training_data[:max_samples]

        # Yield between samples so HTTP requests are served during training
        def yield_to_other_tasks():
            gevent.sleep(0)

        trainer.train(
            net,
            training_data,
            epochs=epochs,
            test_data=test_data,
            callback=on_epoch_complete,
            yield_func=yield_to_other_tasks
        )

        # The final epoch already evaluated the network on the test set
        accuracy = last_update['accuracy']

        active_networks[network_id]['trained'] = True
        active_networks[network_id]['accuracy'] = accuracy

        training_jobs[job_id]['status'] = 'completed'
        training_jobs[job_id]['accuracy'] = accuracy
        training_jobs[job_id]['progress'] = 100

        logger.info(f"Training completed for job {job_id}: accuracy {accuracy:.2%}")

        socketio.emit('training_complete', {
            'job_id': job_id,
            'network_id': network_id,
            'status': 'completed',
            'accuracy': float(accuracy),
            'progress': 100
        })
        gevent.sleep(0)

    except Exception as e:
        logger.exception(f"Training failed for job {job_id}: {e}")

        training_jobs[job_id]['status'] = 'failed'
        training_jobs[job_id]['error'] = str(e)

        socketio.emit('training_error', {
            'job_id': job_id,
            'network_id': network_id,
            'status': 'failed',
            'error': str(e)
        })
        gevent.sleep(0)


@app.route('/api/training/<job_id>', methods=['GET'])
def get_training_status(job_id: str):
    """Get the current status of a training job."""
    if job_id in training_jobs:
        return jsonify(training_jobs[job_id]), 200

    logger.warning(f"Status requested for non-existent job: {job_id}")
    return jsonify({'error': 'Training job not found'}), 404


@app.route('/api/networks', methods=['GET'])
def list_networks():
    """List all networks held in memory."""
    networks = [
        {
            'network_id': nid,
            'architecture': info['architecture'],
            'learning_rate': info['learning_rate'],
            'lambda': info['lambda'],
            'trained': info['trained'],
            'accuracy': info['accuracy'],
            'training': is_training(nid)
        }
        for nid, info in active_networks.items()
    ]

    logger.debug(f"Listing {len(networks)} network(s)")
    return jsonify({'networks': networks}), 200


def _forget_network(network_id: str) -> None:
    del active_networks[network_id]
    for job_id in [jid for jid, job in training_jobs.items()
                   if job['network_id'] == network_id]:
        del training_jobs[job_id]


@app.route('/api/networks/<network_id>', methods=['DELETE'])
def delete_network_endpoint(network_id: str):
    """Delete a network and its training jobs."""
    if network_id not in active_networks:
        logger.warning(f"Delete attempted for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    if is_training(network_id):
        return jsonify({'error': 'Network is training'}), 409

    _forget_network(network_id)
    logger.info(f"Deleted network {network_id}")

    return jsonify({'network_id': network_id, 'deleted': True}), 200


@app.route('/api/networks', methods=['DELETE'])
def delete_all_networks():
    """Delete every network that is not currently training."""
    deletable = [nid for nid in active_networks if not is_training(nid)]
    for network_id in deletable:
        _forget_network(network_id)

    logger.info(f"Deleted {len(deletable)} network(s)")

    return jsonify({
        'deleted_count': len(deletable),
        'message': f'Successfully deleted {len(deletable)} network(s)'
    }), 200


@app.route('/api/networks/<network_id>/predict', methods=['POST'])
def predict(network_id: str):
    """
    Classify an input vector.

    Request body:
        {'inputs': [0.0, 0.5, ...]}  # one value per input neuron

    Returns:
        JSON with the output probabilities and the most probable digit
    """
    if network_id not in active_networks:
        return jsonify({'error': 'Network not found'}), 404

    data = request.get_json(silent=True) or {}
    inputs = data.get('inputs')
    if not isinstance(inputs, list):
        return jsonify({'error': 'inputs must be a list of numbers'}), 400

    net = active_networks[network_id]['network']
    try:
        sample = Sample.for_inference(inputs)
        net.apply_sample(sample)
    except ShapeMismatch as e:
        return jsonify({'error': str(e)}), 400
    except (TypeError, ValueError):
        return jsonify({'error': 'inputs must be a list of numbers'}), 400

    return jsonify({
        'network_id': network_id,
        'predicted': sample.predicted,
        'predicted_digit': sample.predicted_label()
    }), 200


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def array_to_float_list(values: Sequence[float]) -> List[float]:
    """Convert a vector to a list of floats (for JSON serialization)."""
    return [float(val) for val in np.asarray(values).flatten()]


def create_digit_image(image_data: np.ndarray, predicted: int, actual: int) -> str:
    """
    Create a base64-encoded PNG image of a digit.

    Args:
        image_data: Flattened pixel values, square images are shown as a grid
        predicted: The digit the network predicted
        actual: The correct digit

    Returns:
        Base64-encoded PNG image string
    """
    side = math.isqrt(len(image_data))
    if side * side == len(image_data):
        shape = (side, side)
    else:
        shape = (1, len(image_data))

    plt.figure(figsize=(3, 3))
    plt.imshow(np.asarray(image_data).reshape(shape), cmap='gray')
    plt.title(f"Predicted: {predicted} | Actual: {actual}")
    plt.axis('off')

    # Save image to a bytes buffer instead of a file
    buffer = BytesIO()
    plt.savefig(buffer, format='png', bbox_inches='tight')
    buffer.seek(0)
    img_base64 = base64.b64encode(buffer.getvalue()).decode('utf-8')
    plt.close()

    return img_base64


def _find_example(network_id: str, successful: bool, max_attempts: int):
    """Look for a test digit the network classifies (in)correctly."""
    if network_id not in active_networks:
        logger.warning(f"Example requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    try:
        _, data = get_datasets()
    except SampleUnavailable as e:
        logger.error(f"Test data not loaded: {e}")
        return jsonify({'error': 'Test data not available'}), 500

    if not data:
        return jsonify({'error': 'Test data not available'}), 500

    net = active_networks[network_id]['network']
    kind = 'successful' if successful else 'unsuccessful'

    for attempt in range(max_attempts):
        index = int(_example_rng.integers(0, len(data)))
        sample = data[index]

        candidate = Sample.for_inference(sample.inputs, label=sample.label)
        try:
            net.apply_sample(candidate)
        except ShapeMismatch as e:
            logger.warning(f"Test data does not fit network {network_id}: {e}")
            return jsonify({'error': str(e)}), 400
        predicted_digit = candidate.predicted_label()
        actual_digit = sample.label

        if (predicted_digit == actual_digit) == successful:
            logger.debug(f"Found {kind} example on attempt {attempt + 1}")

            return jsonify({
                'network_id': network_id,
                'example_index': index,
                'predicted_digit': predicted_digit,
                'actual_digit': actual_digit,
                'image_data': create_digit_image(
                    sample.inputs, predicted_digit, actual_digit
                ),
                'output_weights': [
                    list(neuron.weights) for neuron in net.output_layer.neurons
                ],
                'network_output': array_to_float_list(candidate.predicted)
            }), 200

    logger.warning(f"No {kind} example found after {max_attempts} attempts")
    return jsonify({
        'error': f'No {kind} example found after {max_attempts} attempts'
    }), 404


# ============================================================================
# EXAMPLE ENDPOINTS
# ============================================================================

@app.route('/api/networks/<network_id>/successful_example', methods=['GET'])
def get_successful_example(network_id: str):
    """Return a random test digit the network classifies correctly."""
    return _find_example(network_id, successful=True, max_attempts=100)


@app.route('/api/networks/<network_id>/unsuccessful_example', methods=['GET'])
def get_unsuccessful_example(network_id: str):
    """Return a random test digit the network classifies incorrectly."""
    return _find_example(network_id, successful=False, max_attempts=200)


# ============================================================================
# SERVER STARTUP
# ============================================================================

if __name__ == '__main__':
    is_cloud = bool(os.environ.get('PORT'))
    port = int(os.environ.get('PORT', 8000))

    if is_cloud:
        logger.info(f"Starting server in production mode on port {port}")
    else:
        logger.info(f"Starting server at http://localhost:{port}/")

    try:
        socketio.run(
            app,
            host='0.0.0.0',
            port=port,
            debug=not is_cloud,
            use_reloader=False,
            allow_unsafe_werkzeug=True
        )
    except OSError as e:
        if "Address already in use" in str(e):
            logger.error(f"Port {port} is already in use.")
            sys.exit(1)
        else:
            raise
