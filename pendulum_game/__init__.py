"""Real-time inverted pendulum balancing game: physics engine, session controller and a streamlit shell."""
