"""JSON API for the mortgage simulator.

Routes
------
POST /api/simulate/calculate   run a simulation without storing it
POST /api/simulate/save        store a finalized simulation record
GET  /api/simulate             list the caller's stored simulations
GET  /api/simulate/<id>        fetch one stored simulation
"""

import logging
from uuid import uuid4

from flask import Flask, current_app, jsonify, request, session

from mortgage_calc.engine import run_simulation
from mortgage_calc.errors import InvalidInput
from mortgage_calc.formatter import result_to_wire
from mortgage_calc.main import build_parameters
from mortgage_calc_web.config import Config
from mortgage_calc_web.simulation_store import create_store

logger = logging.getLogger(__name__)

PAYLOAD_FIELDS = {
    "principal": "principal",
    "rate_value": "rate",
    "term_months": "term",
    "rate_kind": "rate_kind",
    "capitalization": "capitalization",
    "grace_kind": "grace_kind",
    "grace_months": "grace_months",
    "life_insurance_percent": "life_insurance",
    "property_insurance_percent": "property_insurance",
    "bonus_enabled": "bonus",
    "bonus_months": "bonus_months",
    "bonus_percent": "bonus_percent",
    "cok_percent": "cok",
    "upfront_costs": "costs",
    "property_value": "property_value",
    "start_date": "start_date",
    "currency": "currency",
    "residue_policy": "residue_policy",
}
REQUIRED_SAVE_FIELDS = ("client_id", "input_data", "output_summary", "schedule")


def payload_to_parameters(payload: dict):
    """Map a JSON payload onto ``build_parameters`` keyword arguments."""
    kwargs = {arg: payload.get(key) for key, arg in PAYLOAD_FIELDS.items() if key in payload}
    for required in ("principal", "rate", "term"):
        kwargs.setdefault(required, None)
    if kwargs.get("costs") is None:
        kwargs["costs"] = ()
    return build_parameters(**kwargs)


def _current_user_token() -> str:
    if current_app.config.get("TRUST_USER_TOKEN_HEADER"):
        token = request.headers.get("X-User-Token")
        if token:
            return token
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def create_app(config_class=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)
    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store = create_store(
        app.config["SIMULATION_DATABASE_URL"], app.config["SIMULATION_MAX_PER_USER"]
    )
    app.extensions["simulation_store"] = store

    @app.errorhandler(InvalidInput)
    def handle_invalid_input(exc):
        logger.info("Rejected simulation request: %s", exc)
        return jsonify({"message": str(exc)}), 400

    @app.post("/api/simulate/calculate")
    def calculate_simulation():
        params = payload_to_parameters(_json_body())
        result = run_simulation(params)
        if not result.indicators.converged:
            logger.warning(
                "IRR did not converge for a %s-period simulation; indicators are estimates",
                params.term,
            )
        return jsonify(result_to_wire(result))

    @app.post("/api/simulate/save")
    def save_simulation():
        data = _json_body()
        missing = [f for f in REQUIRED_SAVE_FIELDS if data.get(f) in (None, "")]
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}")
        record = store.save_simulation(
            _current_user_token(),
            uuid4().hex,
            data["client_id"],
            data.get("property_snapshot"),
            data["input_data"],
            data["output_summary"],
            data["schedule"],
        )
        logger.info("Stored simulation %s for client %s", record["id"], record["client_id"])
        record.pop("user_token")
        return jsonify(record), 201

    @app.get("/api/simulate")
    def list_simulations():
        records = store.list_simulations(_current_user_token())
        for record in records:
            record.pop("user_token")
        return jsonify(records)

    @app.get("/api/simulate/<simulation_id>")
    def get_simulation(simulation_id):
        record = store.get_simulation(simulation_id)
        if record is None:
            return jsonify({"message": "Simulation not found"}), 404
        if record.pop("user_token") != _current_user_token():
            return jsonify({"message": "Not authorized"}), 401
        return jsonify(record)

    return app


if __name__ == "__main__":
    print("Starting Mortgage Simulator API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
