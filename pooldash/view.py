"""Terminal view of the dashboard state."""

from typing import Dict, List, Optional

from rich.console import Group
from rich.layout import Layout
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from .charts import ChartSpec
from .formatting import PLACEHOLDER, time_ago
from .state import AppState

SPARK_BLOCKS = ['▁', '▂', '▃', '▄', '▅', '▆', '▇', '█']


def create_sparkline(values: List[float], width: int = 40) -> str:
    """Create a sparkline from a series of values.

    Args:
        values: Series values, oldest first
        width: Width of the sparkline in characters

    Returns:
        String with block characters representing the trend
    """
    if not values or len(values) < 2:
        return "[dim]No data[/dim]"

    # Sample data to fit width (take evenly spaced samples)
    if len(values) > width:
        step = len(values) / width
        sampled = [values[int(i * step)] for i in range(width)]
    else:
        sampled = values

    low = min(sampled)
    spread = max(sampled) - low
    if spread == 0:
        return "─" * len(sampled)

    return "".join(
        SPARK_BLOCKS[min(int((v - low) / spread * 8), 7)] for v in sampled
    )


def chart_sparklines(spec: Optional[ChartSpec], width: int = 40) -> Table:
    """One sparkline row per line series of a chart."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()

    if spec is None:
        table.add_row("", "[dim]No chart yet[/dim]")
        return table

    for series in spec.series:
        if series.kind != 'line':
            continue
        line = create_sparkline([p.y for p in series.points], width)
        table.add_row(Text(series.name, style=series.color), line)

    blocks = spec.get('Blocks')
    if blocks is not None:
        table.add_row("Blocks", f"{len(blocks.points)} in window")
    return table


def _fields_grid(rows: List[tuple], fields: Dict[str, str]) -> Table:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    for label, key in rows:
        table.add_row(label, fields.get(key, PLACEHOLDER))
    return table


def create_network_panel(state: AppState) -> Panel:
    fields = state.pool_view.fields
    table = _fields_grid([
        ("Hashrate:", 'net_hash'),
        ("Difficulty:", 'net_diff'),
        ("Height:", 'net_height'),
        ("Reward:", 'net_reward'),
        ("Last Block:", 'net_last'),
        ("Price:", 'price'),
    ], fields)
    return Panel(table, title="[bold]Network[/bold]", border_style="blue")


def create_pool_panel(state: AppState) -> Panel:
    fields = state.pool_view.fields
    table = _fields_grid([
        ("Pool Hashrate:", 'pool_hash'),
        ("Boost:", 'boost'),
        ("Miners:", 'miners'),
        ("Blocks Found:", 'blocks'),
        ("Effort:", 'effort'),
        ("Network Share:", 'share'),
        ("Payments:", 'payments'),
        ("PPLNS Window:", 'pplns'),
    ], fields)
    spec = state.pool_chart.spec if state.pool_chart is not None else None
    return Panel(
        Group(table, Text(""), chart_sparklines(spec)),
        title="[bold]Pool[/bold]",
        border_style="blue",
    )


def create_miner_panel(state: AppState) -> Panel:
    if not state.signed_in:
        return Panel(
            "[dim]Not signed in. Run with --address <wallet> to track a miner.[/dim]",
            title="[bold]Miner[/bold]",
            border_style="grey50",
        )

    view = state.miner_view
    fields = dict(view.fields)
    fields.setdefault('min_payout', f"{state.min_payout:g}")
    table = _fields_grid([
        ("Hashrate:", 'hashrate'),
        ("Pending:", 'balance'),
        ("Paid:", 'paid'),
        ("Paid Value:", 'fiat'),
        ("Threshold:", 'threshold'),
        ("Min Payout:", 'min_payout'),
        ("Shares:", 'shares'),
        ("Est. per Window:", 'estimate'),
    ], fields)

    progress = Table.grid(padding=(0, 1))
    progress.add_column()
    progress.add_column()
    progress.add_row(
        ProgressBar(total=100, completed=view.payout_progress, width=30),
        f"{view.payout_progress:.1f}%",
    )

    parts = [table, Text(""), progress]
    if view.boosting:
        parts.append(Text("⚡ Boost active", style="bold green"))
    spec = state.miner_chart.spec if state.miner_chart is not None else None
    parts.extend([Text(""), chart_sparklines(spec)])

    return Panel(
        Group(*parts),
        title=f"[bold]Miner[/bold] [dim]{state.address[:12]}...[/dim]",
        border_style="green" if view.boosting else "blue",
    )


def _link(text: str, url: Optional[str]) -> str:
    return f"[link={url}]{text}[/link]" if url else text


def _table(title: str, columns: List[str], rows: List[List], empty: str) -> Table:
    table = Table(title=title, expand=True, title_style="bold")
    for column in columns:
        table.add_column(column)
    if not rows:
        table.add_row(f"[dim]{empty}[/dim]", *[""] * (len(columns) - 1))
    for row in rows:
        table.add_row(*row)
    return table


def create_pool_blocks_table(state: AppState) -> Table:
    rows = []
    for block in state.pool_view.blocks:
        effort_style = "red" if block['unlucky'] else "green"
        rows.append([
            _link(block['height'], block.get('url')),
            block['status'],
            block['reward'],
            f"[{effort_style}]{block['effort']}[/{effort_style}]",
            block['found'],
        ])
    return _table("Pool Blocks", ["Height", "Status", "Reward", "Effort", "Found"],
                  rows, "No blocks yet")


def create_pool_payments_table(state: AppState) -> Table:
    rows = [[p['payees'], p['amount'], p['fee'], _link(p['hash'][:12], p.get('url')), p['sent']]
            for p in state.pool_view.payments]
    return _table("Pool Payments", ["Payees", "Amount", "Fee", "Tx", "Sent"],
                  rows, "No payments yet")


def create_workers_table(state: AppState) -> Table:
    rows = [[("⚡ " if w['boost'] else "") + w['name'], w['hashrate'], w['shares'],
             w['total'], w['last_share']] for w in state.miner_view.workers]
    return _table("Workers", ["Name", "Hashrate", "Shares", "Total Hashes", "Last Share"],
                  rows, "No active workers")


def create_miner_payments_table(state: AppState) -> Table:
    rows = [[p['amount'], p['fee'], _link(p['hash'][:12], p.get('url')), p['sent']]
            for p in state.miner_view.payments]
    return _table("Payments", ["Amount", "Fee", "Tx", "Sent"], rows, "No payments yet")


def create_block_rewards_table(state: AppState) -> Table:
    rows = [[b['reward'], b['percent'], _link(b['height'], b.get('url')), b['paid'], b['found']]
            for b in state.miner_view.block_rewards]
    return _table("Block Rewards", ["Reward", "Share", "Height", "Paid", "Found"],
                  rows, "No blocks found yet")


def create_layout(state: AppState) -> Layout:
    """Create dashboard layout.

    Returns:
        Rich Layout object
    """
    layout = Layout()
    layout.split(
        Layout(name="header", size=1),
        Layout(name="top", size=16),
        Layout(name="tables"),
        Layout(name="footer", size=1),
    )

    layout["header"].update(
        Text("⛏️  Monero Pool Dashboard", style="bold white on blue", justify="center")
    )
    layout["top"].split_row(
        Layout(create_network_panel(state), name="network"),
        Layout(create_pool_panel(state), name="pool"),
        Layout(create_miner_panel(state), name="miner"),
    )

    if state.signed_in:
        layout["tables"].split_row(
            Layout(Group(create_workers_table(state), create_miner_payments_table(state),
                         create_pool_payments_table(state)), name="left"),
            Layout(Group(create_block_rewards_table(state), create_pool_blocks_table(state)), name="right"),
        )
    else:
        layout["tables"].split_row(
            Layout(create_pool_blocks_table(state), name="left"),
            Layout(create_pool_payments_table(state), name="right"),
        )

    updated = time_ago(state.last_refresh) if state.last_refresh else "never"
    footer = f"Updated {updated} | cycle {state.cycles}"
    if state.notice:
        footer += f" | {state.notice}"
    layout["footer"].update(Text(footer, style="dim", justify="center"))

    return layout
