"""
Slack message builder (mrkdwn).

Formatting rules: whole dollars with thousands separators, one decimal
for hours and percentages, both rounded half up.
"""

from decimal import ROUND_HALF_UP, Decimal

from bonus_tracker.bonus import Mode
from bonus_tracker.models import CloseDetails, ModeDetails, OnTrackDetails, ReportStats

MEDALS = ["🥇", "🥈", "🥉"]
LEADERBOARD_SIZE = 3

# Fixed English names; strftime would follow the host locale
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _round_half_up(value: float, places: str) -> Decimal:
    # str() first so 45.25 rounds as written, not as its binary approximation
    return Decimal(str(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def format_currency(value: float) -> str:
    amount = int(_round_half_up(value, "1"))
    if amount < 0:
        return f"-${-amount:,}"
    return f"${amount:,}"


def format_hours(value: float) -> str:
    return str(_round_half_up(value, "0.1"))


def format_pct(value: float) -> str:
    return str(_round_half_up(value, "0.1"))


def format_header_date(stats: ReportStats) -> str:
    d = stats.date
    return f"{DAY_NAMES[d.weekday()]}, {MONTH_ABBR[d.month - 1]} {d.day}"


def format_message(
    stats: ReportStats, mode: Mode, details: ModeDetails, dashboard_url: str
) -> str:
    lines = []

    # ── Header ──
    lines.append(f"🚀 *Team Bonus Update* — {format_header_date(stats)}")
    lines.append("")

    # ── Mode headline ──
    if mode is Mode.ON_TRACK and isinstance(details, OnTrackDetails):
        lines.append(
            f"💰 *We're on track for a {format_currency(details.pool)} bonus pool!* "
            f"({details.tier_label})"
        )
    elif mode is Mode.CLOSE and isinstance(details, CloseDetails):
        lines.append(
            f"⚡ *{format_currency(details.gap)} away from unlocking a $1,000 bonus pool*"
        )
    else:
        lines.append("📊 *Here's where we stand this month*")
    lines.append("")

    # ── Core numbers ──
    lines.append(
        f"📊 *Revenue:* {format_currency(stats.current_revenue)} current → "
        f"{format_currency(stats.projected_revenue)} projected"
    )
    lines.append(
        f"⏳ *Day {stats.current_work_day} of {stats.total_work_days}* — "
        f"{stats.days_remaining} days remaining"
    )
    lines.append(
        f"🕐 *Billable Hours:* {format_hours(stats.total_billable_hours)} hrs logged"
    )
    lines.append("")

    # ── Leaderboard ──
    top = stats.leaderboard[:LEADERBOARD_SIZE]
    if top:
        lines.append("🏆 *Top Contributors:*")
        for medal, entry in zip(MEDALS, top):
            lines.append(
                f"{medal} {entry.name} — {format_hours(entry.hours)} hrs "
                f"({format_pct(entry.share_percent)}%)"
            )
        lines.append("")

    # ── Insight ──
    if mode is Mode.ON_TRACK and isinstance(details, OnTrackDetails):
        if details.is_top_tier or details.next_tier_pool is None:
            lines.append("🔥 We're in Top Tier territory — keep this pace and we max out!")
        else:
            lines.append(
                f"📈 Just {format_currency(details.gap_to_next_tier)} more in projected "
                f"revenue to reach the next tier ({format_currency(details.next_tier_pool)} pool)"
            )
    elif mode is Mode.CLOSE and isinstance(details, CloseDetails):
        extra_hours = int(_round_half_up(details.additional_hours, "1"))
        lines.append(
            f"💡 That's ~{extra_hours} extra billable hours, or "
            f"*{format_hours(details.hours_per_person_per_day)} hrs/person/day* "
            f"over the next {stats.days_remaining} days"
        )
    else:
        lines.append("💪 Let's keep building momentum — every billable hour counts")
    lines.append("")

    # ── Dashboard link ──
    lines.append(f"👉 <{dashboard_url}|View Live Dashboard>")

    return "\n".join(lines)
