try:
    from google.adk.agents import Agent
except ImportError:
    # Compatibility with older ADK versions
    from google.adk.agents.llm_agent import Agent


def list_scenarios() -> dict:
    """ADK tool: return the permission scenarios in run order."""
    import main
    from harness import matrix

    profile = main.load_configured_profile()
    return {
        "package": profile.package,
        "scenarios": [
            {"index": s.index, "name": s.name, "decisions": s.as_dict()}
            for s in matrix.generate(profile.kinds)
        ],
    }


def run_scenario(name: str) -> dict:
    """ADK tool: run one scenario (name or index) via main.run_one."""
    import main

    run_dir, result = main.run_one(name)
    return {
        "status": "completed",
        "run_directory": run_dir,
        "result": result,
    }


def run_permission_matrix() -> dict:
    """
    ADK tool: run every Grant/Deny combination of the app's first-run
    permission prompts and return one verdict per scenario.
    """
    import main

    run_dir, results = main.run_suite()
    return {
        "status": "completed",
        "run_directory": run_dir,
        "passed": sum(1 for r in results if r["outcome"] == "PASS"),
        "total": len(results),
        "results": results,
    }


root_agent = Agent(
    name="permission_matrix_root_agent",
    description=(
        "ADK orchestration agent for first-run permission testing. "
        "Delegates device control and verification to the deterministic "
        "permission matrix harness running against an Android emulator."
    ),
    instruction=(
        "You are responsible for running the first-run permission matrix. "
        "When instructed to run tests, invoke list_scenarios, run_scenario, "
        "or run_permission_matrix as appropriate and return the run directory "
        "and the per-scenario verdicts, including every mismatch."
    ),
    tools=[list_scenarios, run_scenario, run_permission_matrix],
)
