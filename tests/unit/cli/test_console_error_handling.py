import pytest
import typer

from image_forge.cli.deployment.errors import CloneError, DeploymentError, PipelineError
from image_forge.cli.shared.console import with_error_handling


def test_with_error_handling_handles_deployment_error():
    @with_error_handling
    def _command() -> None:
        raise DeploymentError("Boom", details="extra")

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 1


def test_with_error_handling_handles_pipeline_error():
    @with_error_handling
    def _command() -> None:
        cause = CloneError("web", "https://example.com/web.git", details="not found")
        raise PipelineError("clone-repositories", cause)

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 1


def test_with_error_handling_handles_keyboard_interrupt():
    @with_error_handling
    def _command() -> None:
        raise KeyboardInterrupt

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 130


def test_pipeline_error_message_names_step_and_entry():
    cause = CloneError("web", "https://example.com/web.git", details="not found")
    error = PipelineError("clone-repositories", cause)

    assert error.entry == "web"
    assert error.message == (
        "Deployment failed at step 'clone-repositories' (entry 'web'): "
        "Failed to clone 'web' repository from https://example.com/web.git"
    )
    assert error.details == "not found"
