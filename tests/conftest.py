import json
import pytest
from flask import Flask
from jsonapi_ops import OpsAPI
from .models import ALL_MODELS, MusicTrack, RecordCompany, db

ATOMIC_CONTENT_TYPE = 'application/vnd.api+json; ext="https://jsonapi.org/ext/atomic"'


@pytest.fixture
def app():
    app = Flask("jsonapi_ops_tests")
    app.config.update(SQLALCHEMY_DATABASE_URI="sqlite://", TESTING=True)
    db.init_app(app)
    with app.app_context():
        api = OpsAPI(app, app_db=db)
        api.expose(*ALL_MODELS)
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def api_graph(app):
    """
    the resource graph of the exposed test models
    """
    return app.extensions["jsonapi_ops"].resource_graph


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def post_operations(client):
    """
    POST a list of operations to the atomic endpoint
    """

    def post(operations, query_string=None, content_type=ATOMIC_CONTENT_TYPE):
        body = {"atomic:operations": operations}
        return client.post("/operations", data=json.dumps(body), content_type=content_type, query_string=query_string)

    return post


@pytest.fixture
def company(app):
    result = RecordCompany(name="Universal", countryOfResidence="USA")
    db.session.add(result)
    db.session.commit()
    return result


@pytest.fixture
def track(app, company):
    result = MusicTrack(id="8dd7ab31-bd1e-4d3a-b4a6-5f4cd4d1b1f6", title="Bohemian Rhapsody", genre="Rock", ownedBy=company)
    db.session.add(result)
    db.session.commit()
    return result
