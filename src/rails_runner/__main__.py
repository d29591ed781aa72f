"""rails-runner CLI bootstrap."""

from rails_runner.cli import app

if __name__ == "__main__":
    app()
