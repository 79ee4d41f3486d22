#!/usr/bin/env python3
"""
Web app for the 11-8 AI discovery session.

Features:
- Password gate (HMAC session cookie)
- Six-step discovery wizard API with server-side persistence
- Conversational discovery agent (Groq / Ollama)
- ElevenLabs text-to-speech proxy
- Agreement export (text or Markdown)

Run:
    python3 web_app.py

Then open: http://localhost:5001
"""

import logging
from typing import Any, Callable, Dict, Optional

from flask import Flask, Response, current_app, jsonify, render_template_string, request

from discovery.auth import (
    check_password,
    clear_session_cookie,
    install_password_gate,
    safe_redirect_target,
    set_session_cookie,
)
from discovery.config import AppConfig
from discovery.errors import DiscoveryError, ReasoningServiceError, SpeechSynthesisError
from discovery.reasoning import DiscoveryChatService
from discovery.reasoning.models import ConversationStage, messages_from_payload
from discovery.voice.session import VoiceSessionRecord
from discovery.voice.text_to_speech import ElevenLabsClient
from discovery.wizard import AgreementDocument, DiscoveryWizard, SessionStore
from discovery.wizard.catalog import (
    INDUSTRY_OPTIONS,
    REVENUE_RANGE_OPTIONS,
    TEAM_SIZE_OPTIONS,
)
from discovery.wizard.calculators import hours_saved
from discovery.wizard.models import IMPACT_LABELS, WizardStep

logger = logging.getLogger(__name__)

LOGIN_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>11-8 AI - Sign in</title>
    <style>
        body { font-family: -apple-system, system-ui, sans-serif; background: #f5f5f7;
               display: flex; min-height: 100vh; align-items: center; justify-content: center; }
        form { background: #fff; padding: 32px; border-radius: 14px; width: 320px;
               box-shadow: 0 1px 3px rgba(0,0,0,0.08); }
        input, button { width: 100%; padding: 10px; margin-top: 12px; font-size: 15px;
                        border-radius: 10px; border: 1px solid rgba(0,0,0,0.12); }
        button { background: #0071e3; color: #fff; border: none; cursor: pointer; }
        .error { color: #c62828; font-size: 13px; min-height: 18px; margin-top: 8px; }
    </style>
</head>
<body>
    <form id="login">
        <h2>11-8 AI</h2>
        <input type="password" id="password" placeholder="Password" autofocus>
        <button type="submit">Continue</button>
        <div class="error" id="error"></div>
    </form>
    <script>
        document.getElementById('login').addEventListener('submit', async (e) => {
            e.preventDefault();
            const res = await fetch('/api/auth?from=' + encodeURIComponent({{ redirect_to|tojson }}), {
                method: 'POST',
                headers: {'Content-Type': 'application/json'},
                body: JSON.stringify({password: document.getElementById('password').value})
            });
            const data = await res.json();
            if (res.ok) { window.location = data.redirectTo; }
            else { document.getElementById('error').textContent = data.error; }
        });
    </script>
</body>
</html>
"""

INDEX_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>11-8 AI - Discovery</title>
    <style>
        body { font-family: -apple-system, system-ui, sans-serif; max-width: 640px;
               margin: 64px auto; color: #1d1d1f; line-height: 1.5; }
        code { background: rgba(0,0,0,0.05); padding: 2px 6px; border-radius: 6px; }
    </style>
</head>
<body>
    <h1>Discovery Session</h1>
    <p>Steps: {{ steps|join(' → ') }}</p>
    <ul>
        <li><code>GET /api/wizard/&lt;id&gt;</code> load or start a session</li>
        <li><code>POST /api/wizard/&lt;id&gt;/actions</code> apply an edit</li>
        <li><code>POST /api/wizard/&lt;id&gt;/next</code> / <code>back</code></li>
        <li><code>GET /api/wizard/&lt;id&gt;/export</code> agreement document</li>
        <li><code>POST /api/discover/chat</code> talk to the discovery agent</li>
    </ul>
    <p>Voice sessions run locally: <code>python -m discovery.voice_cli --business "Your Business"</code></p>
</body>
</html>
"""


# ── Wizard commands ─────────────────────────────────────────────

WizardCommand = Callable[[DiscoveryWizard, Dict[str, Any]], Any]

WIZARD_COMMANDS: Dict[str, WizardCommand] = {
    "update_snapshot": lambda w, p: w.update_snapshot(**p.get("data", {})),
    "toggle_pain_point": lambda w, p: w.toggle_pain_point(p["pain_point_id"]),
    "add_custom_pain_point": lambda w, p: w.add_custom_pain_point(p.get("label", "")),
    "remove_pain_point": lambda w, p: w.remove_pain_point(p["pain_point_id"]),
    "update_hours": lambda w, p: w.update_hours(p["pain_point_id"], p.get("hours")),
    "update_consequence": lambda w, p: w.update_consequence(p["pain_point_id"], p.get("text", "")),
    "reorder_pain_point": lambda w, p: w.reorder_pain_point(p["pain_point_id"], p["over_id"]),
    "update_item_rate": lambda w, p: w.update_item_rate(p["pain_point_id"], p["hourly_rate"]),
    "update_item_impact": lambda w, p: w.update_item_impact(p["pain_point_id"], p["impact"]),
    "add_metric": lambda w, p: w.add_metric(**p.get("data", {})),
    "update_metric": lambda w, p: w.update_metric(p["metric_id"], **p.get("data", {})),
    "remove_metric": lambda w, p: w.remove_metric(p["metric_id"]),
    "set_terms": lambda w, p: w.set_terms(
        p.get("value_share_percent"), p.get("baseline_days"), p.get("measurement_days")
    ),
    "set_signer": lambda w, p: w.set_signer(p.get("client_name"), p.get("client_email")),
    "agree": lambda w, p: w.agree(p.get("client_name"), p.get("client_email")),
}


def wizard_payload(wizard: DiscoveryWizard) -> Dict[str, Any]:
    """Session plus the figures each step displays."""
    session = wizard.session
    split = wizard.value_split
    hours_by_point = {item.pain_point_id: item.hours_per_week for item in session.value_map}
    return {
        "session": session.to_dict(),
        "step": {
            "index": session.current_step,
            "title": session.step.title,
            "canProceed": wizard.can_proceed(),
            "guard": wizard.guard_message(),
        },
        "summary": {
            "hourlyRate": wizard.hourly_rate,
            "totalHoursPerWeek": wizard.total_hours_per_week,
            "totalAnnualCost": wizard.total_annual_cost,
            "totalSavings": split.total_savings,
            "theirShare": split.their_share,
            "ourShare": split.our_share,
            "firstInvoiceDay": session.agreement.first_invoice_day,
        },
        "valueMap": [
            {"painPointId": item.pain_point_id, "impactLabel": IMPACT_LABELS[item.customer_impact]}
            for item in session.value_map
        ],
        "opportunities": [
            {
                "id": opp.id,
                "hoursSaved": hours_saved(
                    hours_by_point.get(opp.pain_point_id, 0), opp.estimated_time_savings_percent
                ),
            }
            for opp in session.automation_opportunities
        ],
    }


# ── App factory ─────────────────────────────────────────────────


def create_app(
    config: Optional[AppConfig] = None,
    store: Optional[SessionStore] = None,
    chat_service: Optional[DiscoveryChatService] = None,
    tts_client: Optional[ElevenLabsClient] = None,
) -> Flask:
    """
    Build the Flask app.

    Args:
        config: Settings (default: from the environment)
        store: Session persistence (default: JSON files under config.data_dir)
        chat_service: Discovery agent (default: built on first chat request)
        tts_client: ElevenLabs client (default: built from config when a key is set)

    Returns:
        Configured Flask app
    """
    config = config or AppConfig.from_env()
    app = Flask(__name__)
    app.config["DISCOVERY"] = config
    app.extensions["discovery"] = {
        "store": store,
        "chat_service": chat_service,
        "tts_client": tts_client,
    }

    install_password_gate(app, config)
    _register_routes(app)

    @app.errorhandler(DiscoveryError)
    def handle_discovery_error(e):
        return jsonify({'error': str(e)}), e.status_code

    return app


def _store() -> SessionStore:
    ext = current_app.extensions["discovery"]
    if ext["store"] is None:
        ext["store"] = SessionStore(current_app.config["DISCOVERY"].data_dir)
    return ext["store"]


def _chat_service() -> DiscoveryChatService:
    ext = current_app.extensions["discovery"]
    if ext["chat_service"] is None:
        ext["chat_service"] = DiscoveryChatService.from_app_config(current_app.config["DISCOVERY"])
    return ext["chat_service"]


def _tts_client() -> Optional[ElevenLabsClient]:
    ext = current_app.extensions["discovery"]
    config = current_app.config["DISCOVERY"]
    if ext["tts_client"] is None and config.tts_configured:
        ext["tts_client"] = ElevenLabsClient(
            api_key=config.elevenlabs_api_key,
            voice_id=config.elevenlabs_voice,
            model_id=config.elevenlabs_model,
        )
    return ext["tts_client"]


def _register_routes(app: Flask):

    # ── Pages & auth ────────────────────────────────────────────

    @app.route('/')
    def index():
        return render_template_string(INDEX_TEMPLATE, steps=[s.title for s in WizardStep])

    @app.route('/login')
    def login_page():
        return render_template_string(LOGIN_TEMPLATE, redirect_to=request.args.get('from', '/'))

    @app.route('/api/auth', methods=['POST'])
    def login():
        config = current_app.config["DISCOVERY"]
        data = request.get_json(silent=True) or {}
        if not check_password(data.get('password'), config):
            return jsonify({'error': 'Incorrect password'}), 401

        response = jsonify({'ok': True, 'redirectTo': safe_redirect_target(request.args.get('from'))})
        return set_session_cookie(response, config)

    @app.route('/api/auth', methods=['DELETE'])
    def logout():
        return clear_session_cookie(jsonify({'ok': True}))

    # ── Conversational agent ────────────────────────────────────

    @app.route('/api/discover/chat', methods=['POST'])
    def discover_chat():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Request body must be JSON'}), 400
        try:
            messages = messages_from_payload(data.get('messages') or [])
        except (ValueError, AttributeError) as e:
            return jsonify({'error': f'Invalid messages: {e}'}), 400

        try:
            reply = _chat_service().respond(
                messages,
                business_name=data.get('businessName', ''),
                notes=data.get('notes'),
            )
        except ReasoningServiceError:
            return jsonify({'error': 'Failed to get agent response'}), 500
        return jsonify(reply.to_dict())

    @app.route('/api/tts', methods=['POST'])
    def text_to_speech():
        """Generate speech audio using ElevenLabs (returns MP3)."""
        data = request.get_json(silent=True) or {}
        text = data.get('text') or ''
        if not text.strip():
            return jsonify({'error': 'No text provided'}), 400

        client = _tts_client()
        if client is None:
            return jsonify({'error': 'ElevenLabs API key not configured'}), 500

        try:
            audio_bytes = client.synthesize(text)
        except SpeechSynthesisError as e:
            logger.error("TTS route error: %s", e)
            return jsonify({'error': 'TTS failed'}), 500
        return Response(audio_bytes, mimetype='audio/mpeg')

    # ── Wizard ──────────────────────────────────────────────────

    @app.route('/api/wizard/options', methods=['GET'])
    def wizard_options():
        return jsonify({
            'industries': list(INDUSTRY_OPTIONS),
            'teamSizes': list(TEAM_SIZE_OPTIONS),
            'revenueRanges': list(REVENUE_RANGE_OPTIONS),
        })

    @app.route('/api/wizard/<session_id>', methods=['GET'])
    def wizard_get(session_id):
        wizard = DiscoveryWizard(_store().load_or_create(session_id))
        return jsonify(wizard_payload(wizard))

    @app.route('/api/wizard/<session_id>/actions', methods=['POST'])
    def wizard_action(session_id):
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Request body must be JSON'}), 400
        command = WIZARD_COMMANDS.get(data.get('type'))
        if command is None:
            return jsonify({'error': f"Unknown action: {data.get('type')}"}), 400

        store = _store()
        wizard = DiscoveryWizard(store.load_or_create(session_id))
        try:
            command(wizard, data)
        except KeyError as e:
            return jsonify({'error': f'Missing or unknown id: {e.args[0]}'}), 400
        except (ValueError, TypeError) as e:
            return jsonify({'error': str(e)}), 400
        payload = wizard_payload(wizard)
        store.save_session(wizard.session)
        return jsonify(payload)

    @app.route('/api/wizard/<session_id>/next', methods=['POST'])
    def wizard_next(session_id):
        store = _store()
        wizard = DiscoveryWizard(store.load_or_create(session_id))
        wizard.next_step()
        store.save_session(wizard.session)
        return jsonify(wizard_payload(wizard))

    @app.route('/api/wizard/<session_id>/back', methods=['POST'])
    def wizard_back(session_id):
        store = _store()
        wizard = DiscoveryWizard(store.load_or_create(session_id))
        wizard.back()
        store.save_session(wizard.session)
        return jsonify(wizard_payload(wizard))

    @app.route('/api/wizard/<session_id>', methods=['DELETE'])
    def wizard_reset(session_id):
        store = _store()
        store.remove_session(session_id)
        store.remove_voice_session(session_id)
        return jsonify({'reset': True})

    @app.route('/api/wizard/<session_id>/export', methods=['GET'])
    def wizard_export(session_id):
        session = _store().load_session(session_id)
        document = AgreementDocument(session)
        if request.args.get('format') == 'markdown':
            filename = document.filename[:-len('.txt')] + '.md'
            body, mimetype = document.to_markdown(), 'text/markdown'
        else:
            filename, body, mimetype = document.filename, document.to_text(), 'text/plain'
        return Response(
            body,
            mimetype=mimetype,
            headers={'Content-Disposition': f'attachment; filename="{filename}"'},
        )

    # ── Voice ───────────────────────────────────────────────────

    @app.route('/api/voice/<session_id>', methods=['GET'])
    def voice_session(session_id):
        data = _store().load_voice_session(session_id)
        if data is None:
            return jsonify({'error': 'Voice session not found'}), 404
        record = VoiceSessionRecord.from_dict(data)
        payload = record.to_dict()
        payload['progress'] = {
            'stage': record.insights.stage_label,
            'stageIndex': record.insights.stage.index,
            'stageCount': len(ConversationStage),
            'totalHoursPerWeek': record.insights.total_hours_per_week,
        }
        return jsonify(payload)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print("""
╔═══════════════════════════════════════════════════════════════╗
║     11-8 AI - DISCOVERY SESSION                                ║
╠═══════════════════════════════════════════════════════════════╣
║  Wizard: Snapshot → Pain Points → Value → Automation →         ║
║          Metrics → Agreement                                   ║
║  Agent:  Groq (or local Ollama) discovery conversation         ║
║  Voice:  ElevenLabs text-to-speech                             ║
╚═══════════════════════════════════════════════════════════════╝

Starting web server...

Open your browser to: http://localhost:5001

Press Ctrl+C to stop the server.
    """)

    create_app().run(debug=True, host='0.0.0.0', port=5001)
