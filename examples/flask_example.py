"""
Rehab Platform Python SDK - Flask Integration Example

Run with: flask --app flask_example run
Requires: pip install rehab-client[flask]
"""

import os

from flask import Flask, jsonify, request

from rehab_client import UserUpdateData
from rehab_client.integrations.flask import RehabFlask, get_rehab_client

app = Flask(__name__)
app.config["REHAB_API_KEY"] = os.environ.get("REHAB_API_KEY", "key_example")
app.config["REHAB_ENVIRONMENT"] = "staging"
app.config["REHAB_TIMEOUT"] = 10.0

rehab = RehabFlask()
rehab.init_app(app)


@app.route("/therapists")
def therapists():
    page = get_rehab_client().users.list(role="therapist", page=int(request.args.get("page", 1)))
    return jsonify(
        therapists=[{"id": u.id, "name": u.full_name} for u in page.data],
        has_more=page.has_more,
    )


@app.route("/therapists/<user_id>/deactivate", methods=["POST"])
def deactivate(user_id):
    user = get_rehab_client().users.update(user_id, UserUpdateData(is_active=False)).data
    return jsonify(id=user.id, active=user.is_active)


if __name__ == "__main__":
    app.run(debug=True)
