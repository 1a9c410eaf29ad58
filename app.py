import logging
import uuid
from typing import Optional

from flask import Flask, g, jsonify, request, send_from_directory
from flask_cors import CORS

from config import Settings
from utils.estimator import compute_estimate
from utils.logging_config import set_request_id, setup_logging
from utils.proposal import ProposalGenerator
from utils.rates import DefaultRates, load_default_rates
from utils.store import DEFAULT_LIMIT, RecordStore, build_record_store, utc_now_iso

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[RecordStore] = None,
    proposal_generator: Optional[ProposalGenerator] = None,
    rates: Optional[DefaultRates] = None,
) -> Flask:
    if settings is None:
        settings = Settings.from_env()
    if rates is None:
        rates = load_default_rates(settings.rates_file)
    if store is None:
        store = build_record_store(settings)
    if proposal_generator is None:
        proposal_generator = ProposalGenerator(
            settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.openai_timeout,
        )

    app = Flask(__name__, static_folder=str(settings.static_dir))
    CORS(app, resources={r"/api/*": {"origins": "*"}}, send_wildcard=True)

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        set_request_id(g.request_id)

    @app.after_request
    def echo_request_id(response):
        response.headers["X-Request-ID"] = g.get("request_id", "")
        set_request_id(None)
        return response

    @app.get("/healthz")
    def health():
        return jsonify(status="ok")

    @app.get("/api/health")
    def api_health():
        return jsonify(ok=True, now=utc_now_iso())

    @app.get("/api/defaults")
    def defaults():
        return jsonify(ok=True, rates=rates.as_dict())

    @app.post("/api/estimate")
    def estimate():
        try:
            payload = request.get_json(silent=True)
            if not isinstance(payload, dict):
                payload = {}
            result = compute_estimate(payload, rates).to_dict()

            proposal = None
            if payload.get("generate_proposal"):
                proposal = proposal_generator.generate(result, payload.get("client_name") or "Client")

            record_id = str(uuid.uuid4())
            record = {
                "id": record_id,
                "created_at": utc_now_iso(),
                "client_name": payload.get("client_name") or None,
                "params": payload,
                "estimate": result,
            }
            store.append(record)
            logger.info(
                "Saved estimate",
                extra={"record_id": record_id, "total": result["summary"]["total"]},
            )
            return jsonify(ok=True, id=record_id, estimate=result, proposal=proposal)
        except Exception as exc:
            logger.exception("Estimate request failed")
            return jsonify(ok=False, error=str(exc)), 500

    @app.get("/api/estimates")
    def list_estimates():
        limit = request.args.get("limit", DEFAULT_LIMIT, type=int)
        limit = max(1, min(limit, DEFAULT_LIMIT))
        return jsonify(ok=True, items=store.list_recent(limit))

    @app.get("/api/estimates/<record_id>")
    def get_estimate(record_id):
        item = store.get(record_id)
        if item is None:
            return jsonify(ok=False, error="not found"), 404
        return jsonify(ok=True, item=item)

    @app.get("/")
    @app.get("/<path:path>")
    def index(path=""):
        # SPA fallback; assets are served from /static
        if path.startswith("api/"):
            return jsonify(ok=False, error="not found"), 404
        return send_from_directory(app.static_folder, "index.html")

    return app


_settings = Settings.from_env()
setup_logging(environment=_settings.environment)
app = create_app(_settings)
