#!/usr/bin/env python3
"""
Photoman API Server
Upload an image, apply pixel effects, preview before/after, download the result.
"""

import os
import logging
from io import BytesIO
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

from .models.errors import PhotomanError, SupersededError
from .models.transform_descriptor import Effect, TransformDescriptor, DEFAULT_FACTOR
from .models.session_state import View
from .services.session_service import SessionService

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "16")) * 1024 * 1024
PREVIEW_FORMAT = "png"

app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

logger = logging.getLogger(__name__)

# Session storage for editor state
sessions = SessionService()

GENERIC_FAILURE = 'Image manipulation failed. Please try again.'


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


def _failure(message: str, status: int = 400):
    return jsonify({'success': False, 'message': message}), status


def _flag(value, default: bool) -> bool:
    """JSON bools, or the strings true/false/1/0 from form-style clients."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ('true', '1', 'yes'):
        return True
    if text in ('false', '0', 'no'):
        return False
    raise ValueError(f"Not a boolean: {value!r}")


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'message': 'Photoman API is running',
        'active_sessions': len(sessions)
    })


@app.route('/api/effects', methods=['GET'])
def list_effects():
    """Effects the editor can apply."""
    return jsonify({
        'effects': [
            {
                'name': effect.value,
                'takes_factor': effect.takes_factor,
                'default_factor': DEFAULT_FACTOR if effect.takes_factor else None,
            }
            for effect in Effect
        ]
    })


@app.route('/api/upload', methods=['POST'])
def upload_image():
    """Load an uploaded image into a (new or existing) session."""
    if 'image' not in request.files:
        return _failure('No image provided')

    file = request.files['image']
    if file.filename == '':
        return _failure('No file selected')

    session = sessions.get_or_create(request.form.get('session_id'))
    filename = file.filename
    try:
        image = session.on_file_selected(file.read(), filename)
        preview = session.image_service.to_data_url(image, PREVIEW_FORMAT)
    except PhotomanError as e:
        logger.error(f"Upload error in session {session.session_id}: {e}")
        return _failure('Could not read that file as an image.')

    return jsonify({
        'success': True,
        **session.describe(),
        'original_url': preview,
        'message': f'Loaded {filename}'
    })


@app.route('/api/effects/apply', methods=['POST'])
def apply_effect():
    """Run one effect on the session's current image."""
    body = _json_body()
    session = sessions.get(body.get('session_id'))
    if session is None:
        return _failure('Invalid session')

    try:
        chain = _flag(body.get('chain'), default=True)
    except ValueError:
        return _failure(f"Invalid chain flag: {body.get('chain')!r}")

    try:
        descriptor = TransformDescriptor.parse(body.get('effect'), body.get('factor'))
        surface = session.apply_effect(descriptor, chain=chain)
        preview = session.image_service.to_data_url(surface, PREVIEW_FORMAT)
    except SupersededError as e:
        logger.info(f"Session {session.session_id}: {e}")
        return _failure('A newer request replaced this one.', 409)
    except PhotomanError as e:
        logger.error(f"Manipulation failed in session {session.session_id}: {e}")
        return _failure(GENERIC_FAILURE)

    return jsonify({
        'success': True,
        **session.describe(),
        'result_url': preview
    })


@app.route('/api/view', methods=['POST'])
def switch_view():
    """Flip between the original upload and the manipulated result."""
    body = _json_body()
    session = sessions.get(body.get('session_id'))
    if session is None:
        return _failure('Invalid session')

    try:
        view = View(str(body.get('view', '')).lower())
        shown = session.show_original() if view is View.ORIGINAL else session.show_result()
        preview = session.image_service.to_data_url(shown, PREVIEW_FORMAT)
    except ValueError:
        return _failure(f"Unknown view: {body.get('view')!r}")
    except PhotomanError as e:
        logger.error(f"View switch failed in session {session.session_id}: {e}")
        return _failure('Nothing to show yet.')

    return jsonify({'success': True, **session.describe(), 'image_url': preview})


@app.route('/api/download', methods=['GET'])
def download():
    """Download the manipulated image as PNG or JPEG."""
    session = sessions.get(request.args.get('session_id'))
    if session is None:
        return _failure('Invalid session')

    fmt = request.args.get('format', 'png')
    try:
        filename, data = session.download(fmt)
    except PhotomanError as e:
        logger.error(f"Download failed in session {session.session_id}: {e}")
        return _failure('No manipulated image to download.')

    mimetype = 'image/png' if filename.endswith('.png') else 'image/jpeg'
    return send_file(BytesIO(data), mimetype=mimetype, as_attachment=True, download_name=filename)


@app.route('/api/clear-session', methods=['POST'])
def clear_session():
    """Clear a session and free memory."""
    session_id = _json_body().get('session_id')
    if sessions.drop(session_id):
        return jsonify({'success': True, 'message': 'Session cleared'})
    return jsonify({'success': False, 'message': 'Session not found'})


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'error': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024*1024)}MB.'}), 413


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server error."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


def main():
    port = int(os.getenv("API_SERVER_PORT", "5002"))
    print("🚀 Starting Photoman API Server...")
    print(f"🔧 Max upload size: {MAX_CONTENT_LENGTH // (1024*1024)}MB")
    print("🎨 Effects: " + ", ".join(effect.value for effect in Effect))
    print("="*60)
    app.run(debug=os.getenv("FLASK_DEBUG", "0") == "1", host='0.0.0.0', port=port)


if __name__ == '__main__':
    main()
