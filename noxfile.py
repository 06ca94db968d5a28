"""Nox sessions for testing, static checks and documentation."""

import nox

PACKAGE = "lumo2snirf"
PYTHON_VERSIONS = ["3.12", "3.13", "3.14"]
PYTHON_MAIN = PYTHON_VERSIONS[-1]

nox.options.sessions = ["coverage", "lint", "type_check", "install_test"]
nox.options.default_venv_backend = "uv|virtualenv"


def install_with_tests(session):
    session.install("-e", ".[test]")


@nox.session(python=PYTHON_VERSIONS)
def tests(session):
    """Run the test suite on every supported Python version."""
    install_with_tests(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_MAIN)
def coverage(session):
    """Run the test suite with line coverage of the package."""
    install_with_tests(session)
    session.run(
        "pytest",
        f"--cov={PACKAGE}",
        "--cov-report=term-missing",
        "--cov-report=xml",
        *session.posargs,
    )


@nox.session(python=PYTHON_MAIN)
def lint(session):
    """Lint and check formatting with ruff; pass --fix to reformat instead."""
    session.install("ruff")
    if "--fix" in session.posargs:
        session.run("ruff", "check", "--fix", ".")
        session.run("ruff", "format", ".")
    else:
        session.run("ruff", "check", ".")
        session.run("ruff", "format", "--check", "--diff", ".")


@nox.session(python=PYTHON_MAIN)
def type_check(session):
    """Type check the package and the tests with mypy."""
    install_with_tests(session)
    session.install("mypy")
    session.run("mypy", PACKAGE, "tests")


@nox.session(python=PYTHON_MAIN)
def docs(session):
    """Build the HTML documentation into docs/_build/html."""
    session.install("-e", ".")
    session.install("sphinx", "sphinx-rtd-theme", "myst-parser")
    session.run("sphinx-build", "-b", "html", "docs", "docs/_build/html")


@nox.session(python=PYTHON_VERSIONS, venv_backend="venv")
def install_test(session):
    """Install from source into a clean environment and run the entry points."""
    session.install(".")
    session.run("python", "-c", f"import {PACKAGE}; print({PACKAGE}.read_lumo)")
    session.run(PACKAGE, "--help", success_codes=[0])
