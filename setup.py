"""
python -m build
twine upload dist/*
"""

from setuptools import setup, find_packages


def jsonapi_ops_setup():
    with open("requirements.txt", "rt") as fp:
        install_requires = fp.read().strip().split("\n")

    version = "0.1.0"

    setup(
        name="jsonapi-ops",
        packages=find_packages(exclude=["tests", "tests.*"]),
        version=version,
        license="MIT",
        description="jsonapi_ops : JSON:API Atomic Operations for Flask-SQLAlchemy",
        long_description=open("README.rst").read(),
        keywords=["SqlAlchemy", "Flask", "REST", "JsonAPI", "Atomic Operations"],
        python_requires=">=3.9, <4",
        install_requires=install_requires,
        classifiers=[
            "Development Status :: 3 - Alpha",
            "Intended Audience :: Developers",
            "Framework :: Flask",
            "Topic :: Software Development :: Libraries",
            "Environment :: Web Environment",
            "Programming Language :: Python :: 3",
        ],
        extras_require={"test": ["pytest>=7"]},
    )


jsonapi_ops_setup()  # pragma: no cover
