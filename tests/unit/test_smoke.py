"""Basic smoke tests for the service wiring."""


def test_imports():
    import agents.dialogue_orchestrator  # noqa: F401
    import interview_session.state_machine  # noqa: F401
    import session_reports.worker  # noqa: F401
    from config.settings import settings

    assert settings.DB_PATH.endswith(".db")


def test_container_wires_components(services):
    assert services.machine is not None
    assert services.worker is not None
    assert services.registry.has("models.dialogue")
