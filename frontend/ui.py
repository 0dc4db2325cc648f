"""
Shared look and feel for the portal pages: icons, styles and small widgets.
"""

import streamlit as st

from config.schemas import VerificationStatus


# =============================================================================
# SVG ICONS
# =============================================================================

def _svg(body: str, size: int = 20, stroke: str = "currentColor") -> str:
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" viewBox="0 0 24 24" '
        f'fill="none" stroke="{stroke}" stroke-width="2" stroke-linecap="round" stroke-linejoin="round">{body}</svg>'
    )


ICONS = {
    "shield": _svg('<path d="M12 22s8-4 8-10V5l-8-3-8 3v7c0 6 8 10 8 10z"></path>', 24, "#2563eb"),
    "building": _svg('<rect x="4" y="2" width="16" height="20" rx="2"></rect><line x1="9" y1="6" x2="9" y2="6.01"></line><line x1="15" y1="6" x2="15" y2="6.01"></line><line x1="9" y1="10" x2="9" y2="10.01"></line><line x1="15" y1="10" x2="15" y2="10.01"></line><path d="M10 22v-4h4v4"></path>'),
    "clipboard": _svg('<path d="M16 4h2a2 2 0 0 1 2 2v14a2 2 0 0 1-2 2H6a2 2 0 0 1-2-2V6a2 2 0 0 1 2-2h2"></path><rect x="8" y="2" width="8" height="4" rx="1" ry="1"></rect>'),
    "user": _svg('<path d="M20 21v-2a4 4 0 0 0-4-4H8a4 4 0 0 0-4 4v2"></path><circle cx="12" cy="7" r="4"></circle>'),
    "check": _svg('<polyline points="20 6 9 17 4 12"></polyline>'),
    "check_circle": _svg('<path d="M22 11.08V12a10 10 0 1 1-5.93-9.14"></path><polyline points="22 4 12 14.01 9 11.01"></polyline>', 20, "#28a745"),
    "alert": _svg('<circle cx="12" cy="12" r="10"></circle><line x1="12" y1="8" x2="12" y2="12"></line><line x1="12" y1="16" x2="12.01" y2="16"></line>', 18, "#dc3545"),
    "info": _svg('<circle cx="12" cy="12" r="10"></circle><line x1="12" y1="16" x2="12" y2="12"></line><line x1="12" y1="8" x2="12.01" y2="8"></line>', 18, "#17a2b8"),
    "clock": _svg('<circle cx="12" cy="12" r="10"></circle><polyline points="12 6 12 12 16 14"></polyline>', 20, "#f59e0b"),
    "wallet": _svg('<rect x="2" y="6" width="20" height="14" rx="2"></rect><path d="M16 13h.01"></path><path d="M2 10h20"></path>'),
    "key": _svg('<circle cx="7.5" cy="15.5" r="5.5"></circle><path d="M21 2l-9.6 9.6"></path><path d="M15.5 7.5l3 3L22 7l-3-3"></path>'),
}


STATUS_BADGES = {
    VerificationStatus.VERIFIED: ("Verified", "#28a745"),
    VerificationStatus.PENDING: ("Pending", "#f59e0b"),
    VerificationStatus.CAC_PENDING: ("CAC Check", "#f59e0b"),
    VerificationStatus.ADMIN_REVIEW: ("Under Review", "#3b82f6"),
    VerificationStatus.REJECTED: ("Rejected", "#dc3545"),
    VerificationStatus.INACTIVE: ("Not Verified", "#6c757d"),
}


# =============================================================================
# STYLES
# =============================================================================

def inject_styles():
    st.markdown("""
    <style>
        .main .block-container {
            max-width: 1100px;
            padding-top: 2rem;
            padding-bottom: 2rem;
        }
        .portal-header {
            text-align: center;
            padding: 20px 0;
            border-bottom: 2px solid #2563eb;
            margin-bottom: 24px;
        }
        .portal-header h1 {
            display: flex;
            align-items: center;
            justify-content: center;
            gap: 12px;
            margin: 0;
            font-weight: 600;
        }
        .section-header {
            display: flex;
            align-items: center;
            gap: 8px;
            font-size: 1.15rem;
            font-weight: 600;
            margin: 8px 0 12px;
        }
        .step-pill {
            display: inline-flex;
            align-items: center;
            justify-content: center;
            width: 32px;
            height: 32px;
            border-radius: 16px;
            font-size: 14px;
            font-weight: 600;
        }
        .step-pill-complete { background: #28a745; color: white; }
        .step-pill-active { background: #2563eb; color: white; }
        .step-pill-pending { background: #e9ecef; color: #6c757d; }
        .status-badge {
            display: inline-block;
            padding: 2px 10px;
            border-radius: 10px;
            font-size: 0.8rem;
            font-weight: 600;
            color: white;
        }
        .info-card, .success-card, .warning-card {
            border-radius: 10px;
            padding: 14px 16px;
            margin: 10px 0;
        }
        .info-card { background: rgba(23, 162, 184, 0.08); border: 1px solid rgba(23, 162, 184, 0.3); }
        .success-card { background: rgba(40, 167, 69, 0.08); border: 1px solid rgba(40, 167, 69, 0.3); }
        .warning-card { background: rgba(245, 158, 11, 0.08); border: 1px solid rgba(245, 158, 11, 0.3); }
        .tier-card {
            border: 1px solid #d0d7e2;
            border-radius: 12px;
            padding: 14px;
            text-align: center;
        }
        .tier-card.popular { border: 2px solid #2563eb; }
    </style>
    """, unsafe_allow_html=True)


# =============================================================================
# WIDGETS
# =============================================================================

def render_header(title: str, subtitle: str = ""):
    st.markdown(f'''
    <div class="portal-header">
        <h1>{ICONS['shield']} {title}</h1>
        <p style="color: #6c757d;">{subtitle}</p>
    </div>
    ''', unsafe_allow_html=True)


def section_header(icon: str, text: str):
    st.markdown(f'<div class="section-header">{ICONS[icon]} {text}</div>', unsafe_allow_html=True)


def card(kind: str, icon: str, html: str):
    """kind is one of info / success / warning."""
    st.markdown(f'''<div class="{kind}-card">
        <div style="display:flex;align-items:center;gap:8px;">{ICONS[icon]} {html}</div>
    </div>''', unsafe_allow_html=True)


def status_badge(status: VerificationStatus) -> str:
    label, color = STATUS_BADGES[status]
    return f'<span class="status-badge" style="background:{color};">{label}</span>'


def render_step_indicator(current_step: int, names, icons):
    """Horizontal step pills: completed, active, pending."""
    total_steps = len(names)
    steps_html = '<div style="display:flex;justify-content:center;align-items:center;gap:8px;margin:20px 0;">'

    for i, (name, icon) in enumerate(zip(names, icons), 1):
        if i < current_step:
            pill, color, weight, label = "complete", "#28a745", 500, ICONS["check"]
        elif i == current_step:
            pill, color, weight, label = "active", "#2563eb", 600, str(i)
        else:
            pill, color, weight, label = "pending", "#6c757d", 400, str(i)

        steps_html += f'''
        <div style="text-align:center;">
            <span class="step-pill step-pill-{pill}">{label}</span>
            <div style="font-size:12px;color:{color};margin-top:4px;font-weight:{weight};">{ICONS[icon] if i == current_step else ""} {name}</div>
        </div>
        '''
        if i < total_steps:
            line = "#28a745" if i < current_step else "#e9ecef"
            steps_html += f'<div style="width:40px;height:2px;background:{line};margin:0 4px;"></div>'

    steps_html += '</div>'
    st.markdown(steps_html, unsafe_allow_html=True)
    st.markdown("---")
