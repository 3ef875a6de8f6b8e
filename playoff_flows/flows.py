from prefect import serve

from playoff_flows.playoff_bracket_pipeline import (
    playoff_bracket_flow,
    standings_flow
)

if __name__ == "__main__":
    """
    Run the League Data flows.
    """
    # Set up the Playoff Bracket flow
    playoff_bracket_deployment = playoff_bracket_flow.to_deployment(
        "playoff-bracket"
    )
    # Set up the Standings flow
    standings_deployment = standings_flow.to_deployment(
        "standings"
    )

    # Serve the flows
    serve(playoff_bracket_deployment, standings_deployment)
