"""Local Flask preview host.

Run: python -m spritefield serve
Opens http://localhost:5000 with a live frame and a few mutation buttons.
"""

from __future__ import annotations

import io
import logging
import webbrowser
from threading import Timer
from typing import Optional

from flask import Flask, jsonify, render_template_string, request, send_file, send_from_directory

from .core.controller import CompositionController
from .core.postfx import PostFXChain
from .data.assets import ICON_ASSETS, SPRITES_DIR
from .data.palettes import PALETTES

log = logging.getLogger(__name__)

# mutations that take one "value"
VALUE_ACTIONS = frozenset(
    {
        "set_scale_percent",
        "set_scale_base",
        "set_scale_spread",
        "set_palette_variance",
        "set_motion_intensity",
        "set_motion_speed",
        "set_blend_mode",
        "set_blend_mode_auto",
        "set_layer_opacity",
        "set_sprite_mode",
        "set_icon_asset",
        "set_rotation_enabled",
        "set_rotation_amount",
        "set_rotation_speed",
        "use_palette",
        "set_background_mode",
        "set_movement_mode",
        "set_seed",
        "set_layout_variant",
    }
)
PLAIN_ACTIONS = frozenset(
    {
        "randomize_all",
        "randomize_icon",
        "randomize_colors",
        "randomize_scale",
        "randomize_scale_range",
        "randomize_motion",
        "randomize_blend_mode",
        "apply_single_tile_preset",
        "apply_nebula_preset",
        "apply_minimal_grid_preset",
        "reset",
    }
)

HTML_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>spritefield</title>
    <style>
        body { background: #111; color: #ddd; font-family: monospace; margin: 20px; }
        img { display: block; margin-bottom: 12px; image-rendering: pixelated; }
        button { margin: 2px; }
    </style>
</head>
<body>
    <img id="frame" src="/frame.png">
    <div>
        <button data-action="randomize_all">randomize</button>
        <button data-action="randomize_colors">colors</button>
        <button data-action="randomize_motion">motion</button>
        <button data-action="apply_nebula_preset">nebula</button>
        <button data-action="apply_minimal_grid_preset">grid</button>
        <button data-action="apply_single_tile_preset">single</button>
        <button data-action="reset">reset</button>
    </div>
    <pre id="state"></pre>
    <script>
        const frame = document.getElementById('frame');
        const stateEl = document.getElementById('state');
        document.querySelectorAll('button').forEach(b => b.onclick = async () => {
            const res = await fetch('/api/mutate', {
                method: 'POST',
                headers: {'Content-Type': 'application/json'},
                body: JSON.stringify({action: b.dataset.action})
            });
            const data = await res.json();
            stateEl.textContent = JSON.stringify(data.state, null, 2);
        });
        function animate() {
            const next = new Image();
            next.onload = () => { frame.src = next.src; requestAnimationFrame(animate); };
            next.onerror = () => setTimeout(animate, 500);
            next.src = '/frame.png?ts=' + Date.now();
        }
        fetch('/api/state').then(r => r.json()).then(d => {
            stateEl.textContent = JSON.stringify(d.state, null, 2);
        });
        animate();
    </script>
</body>
</html>
"""


def _bad_request(message: str):
    return jsonify({"success": False, "error": message}), 400


def create_app(controller: CompositionController, chain: Optional[PostFXChain] = None) -> Flask:
    app = Flask(__name__)
    app.config["CONTROLLER"] = controller
    app.config["POSTFX"] = chain or PostFXChain()

    @app.route("/")
    def index():
        return render_template_string(HTML_TEMPLATE)

    @app.route("/api/state")
    def get_state():
        return jsonify({"success": True, "state": controller.snapshot(), "fps": controller.last_frame_rate})

    @app.route("/api/palettes")
    def list_palettes():
        return jsonify(
            {"success": True, "palettes": [{"id": p.id, "name": p.name, "colors": list(p.colors)} for p in PALETTES]}
        )

    @app.route("/api/assets")
    def list_assets():
        return jsonify(
            {"success": True, "assets": [{"id": a.id, "label": a.label, "url": a.url} for a in ICON_ASSETS]}
        )

    @app.route("/api/mutate", methods=["POST"])
    def mutate():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _bad_request("Expected a JSON object")
        action = data.get("action")
        if action in PLAIN_ACTIONS:
            accepted = getattr(controller, action)()
        elif action in VALUE_ACTIONS:
            if "value" not in data:
                return _bad_request(f"{action} needs a value")
            accepted = getattr(controller, action)(data["value"])
        else:
            return _bad_request(f"Unknown action {action!r}")
        log.debug("mutate %s -> %s", action, accepted)
        return jsonify({"success": bool(accepted), "state": controller.snapshot()})

    @app.route("/api/resize", methods=["POST"])
    def resize():
        data = request.get_json(silent=True) or {}
        try:
            width = int(data["width"])
            height = int(data["height"])
        except (KeyError, TypeError, ValueError):
            return _bad_request("width and height must be integers")
        if width <= 0 or height <= 0 or width > 4096 or height > 4096:
            return _bad_request("width and height must be within 1..4096")
        controller.resize(width, height)
        return jsonify({"success": True, "width": width, "height": height})

    @app.route("/frame.png")
    def frame():
        t = request.args.get("t")
        if t is not None:
            try:
                im = controller.render_at(float(t))
            except ValueError:
                return _bad_request("t must be a number")
        else:
            im = controller.tick()
        if im is None:
            return jsonify({"success": False, "error": "controller destroyed"}), 503
        im = app.config["POSTFX"].apply(im)
        buf = io.BytesIO()
        im.save(buf, format="PNG")
        buf.seek(0)
        return send_file(buf, mimetype="image/png")

    @app.route("/sprites/<path:name>")
    def sprite(name):
        return send_from_directory(SPRITES_DIR, name)

    return app


def open_browser(url: str) -> None:
    webbrowser.open(url)


def serve(
    controller: CompositionController,
    host: str = "127.0.0.1",
    port: int = 5000,
    chain: Optional[PostFXChain] = None,
    browser: bool = False,
) -> None:
    app = create_app(controller, chain)
    url = f"http://{host}:{port}"
    log.info("Serving preview on %s", url)
    if browser:
        Timer(1.5, open_browser, args=(url,)).start()
    try:
        app.run(host=host, port=port, debug=False, threaded=True)
    finally:
        controller.destroy()
