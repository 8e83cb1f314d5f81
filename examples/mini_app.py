#!/usr/bin/env python
# run:
# $ FLASK_APP=mini_app flask run
#
# create a user and a post written by that user in one batch:
# $ curl -X POST http://127.0.0.1:5000/my_api/operations \
#        -H 'Content-Type: application/vnd.api+json; ext="https://jsonapi.org/ext/atomic"' \
#        -d '{"atomic:operations": [
#              {"op": "add", "data": {"type": "Users", "lid": "u1", "attributes": {"name": "test"}}},
#              {"op": "add", "data": {"type": "Posts", "attributes": {"title": "hello"},
#                                     "relationships": {"author": {"data": {"type": "Users", "lid": "u1"}}}}}
#            ]}'
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from jsonapi_ops import ResourceBase, OpsAPI

db = SQLAlchemy()


class User(ResourceBase, db.Model):
    __tablename__ = "Users"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String)
    email = db.Column(db.String)
    posts = db.relationship("Post", back_populates="author")


class Post(ResourceBase, db.Model):
    __tablename__ = "Posts"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String, nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey("Users.id"))
    author = db.relationship("User", back_populates="posts")


def create_api(app, host="127.0.0.1", port=5000, prefix="/my_api"):
    api = OpsAPI(app, app_db=db, prefix=prefix)
    api.expose(User, Post)
    print(f"Starting API: http://{host}:{port}{prefix}{api.operations_url}")


def create_app(host="127.0.0.1"):
    app = Flask("demo_app")
    app.config.update(SQLALCHEMY_DATABASE_URI="sqlite:///mini_app.sqlitedb")
    db.init_app(app)
    with app.app_context():
        db.create_all()
        create_api(app, host)
    return app


app = create_app()

if __name__ == "__main__":
    app.run()
