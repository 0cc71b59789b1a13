from __future__ import annotations

import logging
import queue
import time

import plotly.graph_objects as go
import streamlit as st

from pendulum_game.events import PhaseChanged
from pendulum_game.session import GameSession

BOARD_W = 480
BOARD_H = 360
REFRESH_S = 0.033


def _ensure_session() -> GameSession:
    if "game" not in st.session_state:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
        game = GameSession()
        st.session_state.game = game
        st.session_state.events, _ = game.events.subscribe_queue(maxsize=64)
        st.session_state.last_transition = ""
    return st.session_state.game


def _needs_refresh(was_active: bool, game: GameSession) -> bool:
    # one more run after the game ends so the final phase and board get drawn
    return was_active or game.is_active


def _drain_events() -> None:
    q = st.session_state.events
    while True:
        try:
            event = q.get_nowait()
        except queue.Empty:
            break
        if isinstance(event, PhaseChanged):
            st.session_state.last_transition = f"{event.old} → {event.new}"


def _update_settings_from_sidebar(game: GameSession) -> None:
    s = game.settings
    gravity = st.sidebar.slider(
        "Gravity strength", min_value=s.gravity_range[0], max_value=s.gravity_range[1],
        value=game.get_gravity(), help="Low … High",
    )
    game.set_gravity(gravity)

    duration = st.sidebar.slider(
        "Phase duration (ms)", min_value=s.phase_duration_range[0], max_value=s.phase_duration_range[1],
        value=game.get_phase_duration(), step=100, help="Fast … Slow",
    )
    game.set_phase_duration(duration)


def _build_figure(game: GameSession) -> go.Figure:
    fig = go.Figure()
    if game.is_active or game.pendulum.is_fallen:
        geo = game.geometry()
        # board y grows downwards; flip for plotting
        xs = [p[0] for p in geo.polygon] + [geo.polygon[0][0]]
        ys = [BOARD_H - p[1] for p in geo.polygon] + [BOARD_H - geo.polygon[0][1]]
        fig.add_trace(go.Scatter(x=xs, y=ys, fill="toself", mode="lines", line=dict(color="#1D4ED8", width=1),
                                 fillcolor="#2563EB", hoverinfo="skip", showlegend=False))
        fig.add_trace(go.Scatter(x=[geo.pivot_x], y=[BOARD_H - geo.pivot_y], mode="markers",
                                 marker=dict(size=10, color="#1F2937"), hoverinfo="skip", showlegend=False))
        background = "#FFFFFF"
    else:
        background = "#000000"

    fig.update_layout(
        template="plotly_white",
        margin=dict(l=10, r=10, t=10, b=10),
        plot_bgcolor=background,
        xaxis=dict(range=[0, BOARD_W], showgrid=False, zeroline=False, visible=False),
        yaxis=dict(range=[0, BOARD_H], scaleanchor="x", scaleratio=1.0, showgrid=False, zeroline=False, visible=False),
        dragmode=False,
        height=BOARD_H + 40,
    )
    return fig


def main() -> None:
    st.set_page_config(page_title="Inverted Pendulum Game", layout="wide")
    game = _ensure_session()
    was_active = game.is_active
    _drain_events()

    st.title("Inverted Pendulum Game")
    remaining = max(0, game.time_remaining()) / 1000.0
    col_phase, col_time = st.columns(2)
    col_phase.metric("Current phase", game.get_phase(), delta=st.session_state.last_transition or None,
                     delta_color="off")
    col_time.metric("Time remaining", f"{remaining:.1f} s")

    _update_settings_from_sidebar(game)

    st.plotly_chart(_build_figure(game), use_container_width=True,
                    config={"staticPlot": True, "displayModeBar": False})

    position = st.slider("Position", min_value=game.settings.position_range[0],
                         max_value=game.settings.position_range[1], value=game.engine.state.base_position)
    game.set_position(position)

    col_start, col_stop = st.columns(2)
    with col_start:
        if st.button("Start", type="primary", use_container_width=True):
            game.start_game()
    with col_stop:
        if st.button("Stop", type="secondary", use_container_width=True):
            game.stop_game()

    with st.expander("Details (State)", expanded=False):
        p = game.pendulum
        st.write({
            "active": game.is_active,
            "theta": p.theta,
            "theta_dot": p.theta_dot,
            "base_position": p.base_position,
            "base_acceleration": p.base_acceleration,
            "fallen": p.is_fallen,
            "fall_threshold": game.physics.fall_threshold,
        })

    # poll the running game
    if _needs_refresh(was_active, game):
        time.sleep(REFRESH_S)
        st.rerun()


if __name__ == "__main__":
    main()
