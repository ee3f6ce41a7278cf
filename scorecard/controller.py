import json
import logging

from flask import Flask, request
from flask_cors import CORS

import scorecard.controller_utility as controller_util
import scorecard.validator as validator
from scorecard.constants import WEEK_ENDING
from scorecard.data_loader import SnapshotLoader
from scorecard.editability import is_editable

app = Flask(__name__)

cors = CORS(app, resources={r"/*": {"origins": "*"}})


@app.route('/get-dashboard', methods=['POST'])
def get_dashboard():
    """
    A flask endpoint, builds the scorecard dashboard for a given config yaml and optional snapshot csv file.
    The config is read from the configUrl query argument when given, otherwise from the uploaded configfile.
    :return: A json response for the frontend to render the dashboard
    """
    if 'configUrl' not in request.args and 'configfile' not in request.files:
        return app.response_class(
            response=json.dumps({"description": "A configfile or configUrl is required"}),
            status=400
        )
    csv_data_file = request.files.get('csvfile')

    try:
        cfg = controller_util.load_yaml_from_url(request.args["configUrl"]) \
            if 'configUrl' in request.args else controller_util.load_yaml_from_stream(request.files['configfile'])
    except Exception as e:
        return app.response_class(
            response=json.dumps({"description": e.__str__()}),
            status=500
        )

    try:
        deck = process_input(csv_data_file, cfg)
    except Exception as e:
        logging.error(e, exc_info=True)
        return app.response_class(
            response=json.dumps({"description": e.__str__()}),
            status=500
        )

    return app.response_class(
        response=json.dumps(deck, indent=4, cls=controller_util.Encoder),
        status=200,
        mimetype='application/json'
    )


def process_input(data, cfg):
    try:
        validator.ScorecardValidator(cfg).validate_yaml()
    except Exception as e:
        logging.error("Yaml validation failed", exc_info=True)
        raise Exception(f"Invalid configuration provided: {e.__str__()}")

    try:
        loader = SnapshotLoader(cfg, csv_data=data)
        dashboard = controller_util.build_dashboard(cfg, loader.repository, loader.preferences_repository)
        dashboard.load(loader.snapshots)
    except Exception as error:
        logging.error(error, exc_info=True)
        raise Exception(f"Could not load the dashboard due to: {error.__str__()}")

    try:
        deck = controller_util.get_dashboard_deck(dashboard, cfg['setup'].get('title'))
    except Exception as err:
        logging.error(err, exc_info=True)
        raise Exception(f"Error while creating deck, caused by: {err.__str__()}")

    return deck


@app.route('/is-editable', methods=['POST'])
def is_week_editable():
    """
    A flask endpoint, tells whether a week's values may be changed.
    Expects a json body with weekKey, isCurrentWeek, pastWeeksUnlocked and optionally weekConvention and today.
    :return: {"editable": bool}
    """
    body = request.get_json(silent=True) or {}
    try:
        today = controller_util.parse_config_date(body['today']) if body.get('today') else None
        editable = is_editable(
            bool(body.get('isCurrentWeek', False)),
            body.get('weekKey'),
            bool(body.get('pastWeeksUnlocked', False)),
            body.get('weekConvention', WEEK_ENDING),
            today,
        )
    except ValueError as e:
        logging.error(e, exc_info=True)
        return app.response_class(
            response=json.dumps({"description": e.__str__()}),
            status=500
        )

    return app.response_class(
        response=json.dumps({"editable": editable}),
        status=200,
        mimetype='application/json'
    )


def start():
    return app


if __name__ == "__main__":
    app.run(debug=False, port=5001, host='0.0.0.0')
