import plotly.express as px
import pandas as pd

def export_stats_chart(rows, path: str):
    if not rows:
        with open(path, "w") as f:
            f.write("<h1>Cache Statistics</h1><p>No data to display.</p>")
        return

    df = pd.DataFrame(rows)
    counter_cols = ['read_hits', 'write_hits', 'read_misses', 'write_misses']
    for col in counter_cols:
        df[col] = pd.to_numeric(df[col], errors='coerce').fillna(0)

    # One bar per (level, counter) pair
    long_df = df.melt(id_vars=['level'], value_vars=counter_cols, var_name='counter', value_name='count')

    fig = px.bar(
        long_df,
        x="level",
        y="count",
        color="counter",
        barmode="group",
        text="count",
        title="Cache Hierarchy Hit/Miss Statistics",
        labels={"level": "Cache Level", "count": "Accesses", "counter": "Counter"}
    )

    fig.update_layout(
        font=dict(family="Courier New, monospace", size=12),
        legend_title="Counter"
    )

    fig.write_html(path, include_plotlyjs="cdn", full_html=True)

def export_stats_ascii(rows):
    if not rows:
        return "No cache statistics."

    header = f"{'Level':>8} | {'Hits':>10} | {'Misses':>10} | {'Hit Rate':>8} | Bar"
    chart = "Cache Hierarchy Statistics (ASCII)\n"
    chart += header + "\n"
    chart += "-" * (len(header) + 40) + "\n"

    for row in rows:
        accesses = row['hits'] + row['misses']
        rate = row['hits'] / accesses if accesses else 0.0
        bar = "#" * int(rate * 40)
        bar += "." * (40 - len(bar))
        chart += f"{row['level']:>8} | {row['hits']:>10} | {row['misses']:>10} | {rate:>8.2%} | {bar}\n"
    return chart
