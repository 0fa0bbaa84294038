"""Test that the project setup is working correctly."""

import deployment_tracker


def test_version() -> None:
    """Test that version is defined."""
    assert deployment_tracker.__version__ == "0.1.0"


def test_import_modules() -> None:
    """Test that all submodules can be imported."""
    from deployment_tracker import alerter
    from deployment_tracker import pipeline
    from deployment_tracker import resolver
    from deployment_tracker import scoring
    from deployment_tracker import sources
    from deployment_tracker import storage

    # Just verify imports work
    assert alerter is not None
    assert pipeline is not None
    assert resolver is not None
    assert scoring is not None
    assert sources is not None
    assert storage is not None
