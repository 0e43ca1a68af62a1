"""
dashboard.py — Streamlit live dashboard for the Ashwick settlement simulation.

Launch:
    python -m ashwick --dashboard --mode scheduled --interval 1
    streamlit run dashboard.py

Reads only dashboard_data.json — no sim modules imported.
Auto-refreshes at 2 FPS via streamlit-autorefresh (falls back to a
manual Refresh button when the package is not installed).
"""

import json
import pathlib
import numpy as np
import streamlit as st
import plotly.graph_objects as go
import plotly.express as px

# ── Optional: streamlit-autorefresh for 2-FPS polling ────────────────────
try:
    from streamlit_autorefresh import st_autorefresh as _st_autorefresh
    _HAS_AUTOREFRESH = True
except ImportError:
    _HAS_AUTOREFRESH = False

DATA_PATH = pathlib.Path("dashboard_data.json")

_PRESSURE_KEYS  = ['subsistence', 'security', 'extraction']
_PRESSURE_NAMES = ['Subsistence', 'Security', 'Extraction']

_METER_COLORS = {
    'morale':     '#FFB347',
    'legitimacy': '#66ECFF',
    'food':       '#66FF99',
    'material':   '#CC9966',
    'tooling':    '#AAAAAA',
    'population': '#FF66C0',
}

_STATUS_BADGE = {
    'stable':   ('🟢', 'Stable'),
    'tense':    ('🟠', 'Tense'),
    'unstable': ('🔴', 'Unstable'),
    'ended':    ('⚫', 'Ended'),
}

_DARK_LAYOUT = dict(
    paper_bgcolor='#0e1117',
    plot_bgcolor='#111827',
    font=dict(color='white'),
    legend=dict(bgcolor='rgba(0,0,0,0)', font=dict(color='white', size=11)),
    margin=dict(l=50, r=30, t=40, b=40),
)


# ══════════════════════════════════════════════════════════════════════════
# Data loading — TTL-cached so we don't hammer disk on every Streamlit run
# ══════════════════════════════════════════════════════════════════════════

@st.cache_data(ttl=2)
def _read_json(mtime: float) -> dict | None:          # mtime is the cache-bust key
    try:
        return json.loads(DATA_PATH.read_text(encoding='utf-8'))
    except (FileNotFoundError, json.JSONDecodeError):
        return None


def load_data() -> dict | None:
    try:
        mtime = DATA_PATH.stat().st_mtime
    except FileNotFoundError:
        return None
    return _read_json(mtime)


# ══════════════════════════════════════════════════════════════════════════
# Derived series
# ══════════════════════════════════════════════════════════════════════════

def _series(history: list, key: str) -> np.ndarray:
    return np.array([h[key] for h in history], dtype=float)


def pressure_matrix(history: list) -> np.ndarray:
    """3 × days array of pressure values (rows in _PRESSURE_KEYS order)."""
    if not history:
        return np.zeros((len(_PRESSURE_KEYS), 0))
    return np.vstack([_series(history, k) for k in _PRESSURE_KEYS])


def food_runway(data: dict) -> float | None:
    """Days until food runs out at today's net rate; None while not shrinking."""
    net = data['rates']['net_food']
    if net >= 0:
        return None
    return float(np.floor(data['food'] / -net))


def legitimacy_trend(history: list, window: int = 7) -> float:
    """Least-squares slope of legitimacy over the last *window* days."""
    if len(history) < 2:
        return 0.0
    recent = history[-window:]
    days   = _series(recent, 'day')
    legit  = _series(recent, 'legitimacy')
    if np.ptp(days) == 0:
        return 0.0
    slope, _ = np.polyfit(days, legit, 1)
    return float(slope)


# ══════════════════════════════════════════════════════════════════════════
# Figures
# ══════════════════════════════════════════════════════════════════════════

def build_meter_chart(history: list) -> go.Figure:
    """Line chart: morale and legitimacy over time, with the status bands."""
    fig  = go.Figure()
    days = [h['day'] for h in history]
    for key in ('morale', 'legitimacy'):
        fig.add_trace(go.Scatter(
            x=days, y=[h[key] for h in history],
            mode='lines',
            line=dict(color=_METER_COLORS[key], width=2),
            name=key.capitalize(),
            hovertemplate=f'<b>{key}</b>: %{{y:.1f}}<br>Day %{{x}}<extra></extra>',
        ))

    for y_val, label, color in [(75, 'Stable', '#44ff88'), (40, 'Tense', '#ffb347')]:
        fig.add_hline(
            y=y_val,
            line_dash='dot',
            line_color=color,
            opacity=0.6,
            annotation_text=f'  {label}',
            annotation_position='right',
            annotation_font_color=color,
            annotation_font_size=11,
        )

    fig.update_layout(
        title=dict(text='Morale & Legitimacy', font=dict(color='#dddddd', size=13), x=0.0),
        xaxis=dict(title='Day', gridcolor='#1e2233', zeroline=False),
        yaxis=dict(range=[0, 100], gridcolor='#1e2233'),
        height=300,
        **_DARK_LAYOUT,
    )
    return fig


def build_stock_chart(history: list) -> go.Figure:
    fig  = go.Figure()
    days = [h['day'] for h in history]
    for key in ('food', 'material', 'tooling', 'population'):
        fig.add_trace(go.Scatter(
            x=days, y=[h[key] for h in history],
            mode='lines',
            line=dict(color=_METER_COLORS[key], width=2,
                      dash='dash' if key == 'population' else 'solid'),
            name=key.capitalize(),
        ))
    fig.update_layout(
        title=dict(text='Stocks & Population', font=dict(color='#dddddd', size=13), x=0.0),
        xaxis=dict(title='Day', gridcolor='#1e2233', zeroline=False),
        yaxis=dict(gridcolor='#1e2233', rangemode='tozero'),
        height=300,
        **_DARK_LAYOUT,
    )
    return fig


def build_pressure_heatmap(history: list) -> go.Figure:
    """Heatmap: one row per pressure track, one column per day."""
    mat  = pressure_matrix(history)
    days = [h['day'] for h in history]
    fig  = px.imshow(
        mat,
        x=days or None,
        y=_PRESSURE_NAMES,
        zmin=0, zmax=100,
        color_continuous_scale='YlOrRd',
        aspect='auto',
        origin='upper',
    )
    fig.update_layout(
        title=dict(text='Pressure Tracks', font=dict(color='#dddddd', size=13), x=0.0),
        coloraxis_colorbar=dict(title='', tickfont=dict(color='white')),
        height=220,
        **_DARK_LAYOUT,
    )
    return fig


# ══════════════════════════════════════════════════════════════════════════
# Page config — must be first Streamlit call
# ══════════════════════════════════════════════════════════════════════════

st.set_page_config(
    page_title='Ashwick — Live Dashboard',
    page_icon='🏘',
    layout='wide',
    initial_sidebar_state='expanded',
)

# Inject minimal dark-mode polish
st.markdown("""
<style>
[data-testid="stTextArea"] textarea {
    font-family: 'Courier New', monospace;
    font-size: 11px;
    background: #0a0e17;
    color: #a8c8a8;
    border: 1px solid #2a3040;
}
[data-testid="metric-container"] {
    background: #111827;
    border-radius: 8px;
    padding: 10px 16px;
    margin-bottom: 6px;
}
</style>
""", unsafe_allow_html=True)

# ── Auto-refresh: 500 ms = 2 FPS ─────────────────────────────────────────
if _HAS_AUTOREFRESH:
    _st_autorefresh(interval=500, key='sim_autorefresh')

# ── Load data ─────────────────────────────────────────────────────────────
data = load_data()

# ══════════════════════════════════════════════════════════════════════════
# Sidebar
# ══════════════════════════════════════════════════════════════════════════

with st.sidebar:
    st.title('🏘 Ashwick')
    st.caption('Settlement Simulation · Live Monitor')

    if not _HAS_AUTOREFRESH:
        if st.button('⟳  Refresh', use_container_width=True):
            st.cache_data.clear()
            st.rerun()
        st.caption('Auto-refresh unavailable.\n`pip install streamlit-autorefresh`')

    st.divider()

    if data is None:
        st.warning(
            '**Waiting for simulation data…**\n\n'
            'Run the simulation first:\n\n```\npython -m ashwick --dashboard\n```\n\n'
            'The dashboard file is written after every day.'
        )
    else:
        icon, label = _STATUS_BADGE.get(data['status'], ('⚪', data['status']))
        runway      = food_runway(data)
        history     = data.get('history', [])

        st.metric('📅 Day',         str(data['day']))
        st.metric('👥 Population',  str(data['population']))
        st.metric(f'{icon} Status', label)
        st.metric('⚖ Legitimacy',   f"{data['legitimacy']:.1f}",
                  delta=f"{legitimacy_trend(history):+.2f}/day")
        st.metric('🍞 Food runway', '∞' if runway is None else f'{runway:.0f} days')

        st.divider()
        st.subheader('Labor')
        labor = data['labor']
        st.markdown(
            f"Food **{labor['food']}** · Material **{labor['material']}** · "
            f"Tooling **{labor['tooling']}** · Idle **{labor['idle']}**"
        )
        policy = data['policy']
        if policy['rationing_days_left']:
            st.caption(f"Rationing: {policy['rationing_days_left']} days left")
        if policy['feasting_days_left']:
            st.caption(f"Feast: {policy['feasting_days_left']} days left")

# ══════════════════════════════════════════════════════════════════════════
# Main panel
# ══════════════════════════════════════════════════════════════════════════

if data is None:
    st.info(
        '**dashboard_data.json** not found yet.  \n'
        'Start the simulation (`python -m ashwick --dashboard`) and the first '
        'snapshot appears after day 1.'
    )
    st.stop()

history = data.get('history', [])
rates   = data['rates']

# Header bar
ended_note = f" &nbsp;·&nbsp; **{data['end_reason']}**" if data['ended'] else ''
st.markdown(
    f"### Day **{data['day']}** &nbsp;·&nbsp; "
    f"{data['population']} people &nbsp;·&nbsp; "
    f"food {data['food']:.0f} ({rates['net_food']:+.1f}/day) &nbsp;·&nbsp; "
    f"{data['farms']} farms{ended_note}",
    unsafe_allow_html=True,
)

col_left, col_right = st.columns([3, 2], gap='medium')

with col_left:
    st.plotly_chart(
        build_meter_chart(history),
        use_container_width=True,
        key='meter_chart',
        config={'displayModeBar': False},
    )
    st.plotly_chart(
        build_stock_chart(history),
        use_container_width=True,
        key='stock_chart',
        config={'displayModeBar': False},
    )

with col_right:
    st.plotly_chart(
        build_pressure_heatmap(history),
        use_container_width=True,
        key='pressure_heatmap',
        config={'displayModeBar': False},
    )

    ev = data.get('event')
    if ev:
        st.subheader(f"⚠ {ev['title']}")
        st.write(ev['body'])
        for i, opt in enumerate(ev['options']):
            st.markdown(f"`[{i}]` {opt['label']}" + ('' if opt['available'] else ' *(cannot afford)*'))

    st.subheader('Event Feed')
    feed      = list(reversed(data.get('event_tail', [])))
    event_txt = '\n'.join(feed[:30])
    st.text_area(
        label='Events',
        value=event_txt,
        height=215,
        disabled=True,
        key='event_feed',
        label_visibility='collapsed',
    )
