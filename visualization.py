import networkx as nx
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches

STATUS_COLORS = {
    'trusted': '#44FF44',
    'suspect': '#FF4444',
    'unclassified': '#DDDDDD',
}
ROLE_COLORS = {
    'greyhole': '#222222',
    'source': '#4488FF',
    'sink': '#AA44FF',
    'idle': '#FFFFFF',
}


def visualize_network(graph, statuses=None, greyhole=None, filename="network_topology.png", return_fig=False):
    """
    Draws the grid topology.
    - Watchdog nodes are coloured by their final verdict (statuses: {node_id: status value})
    - Other nodes are coloured by role; the greyhole relay is drawn larger
    """
    statuses = statuses or {}
    fig = plt.figure(figsize=(12, 10))

    pos = nx.get_node_attributes(graph, 'pos') or nx.spring_layout(graph, seed=42)

    node_colors = []
    node_sizes = []
    for node in graph.nodes():
        role = graph.nodes[node].get('role', 'idle')
        if node in statuses:
            node_colors.append(STATUS_COLORS.get(statuses[node], '#DDDDDD'))
        else:
            node_colors.append(ROLE_COLORS.get(role, '#FFFFFF'))
        node_sizes.append(800 if node == greyhole else 500)

    nx.draw_networkx_nodes(graph, pos, node_color=node_colors, node_size=node_sizes, edgecolors='black')
    nx.draw_networkx_edges(graph, pos, alpha=0.2, edge_color='gray', style='dashed')

    if greyhole is not None and greyhole in graph:
        relay_edges = [(greyhole, n) for n in graph.neighbors(greyhole)]
        nx.draw_networkx_edges(graph, pos, edgelist=relay_edges, edge_color='black', width=2, alpha=0.6)

    nx.draw_networkx_labels(graph, pos, font_weight='bold')

    legend_patches = [mpatches.Patch(color=c, label=f"{s.capitalize()} watchdog") for s, c in STATUS_COLORS.items()]
    legend_patches += [mpatches.Patch(color=ROLE_COLORS[r], label=r.capitalize()) for r in ('greyhole', 'source', 'sink')]
    plt.legend(handles=legend_patches, loc='upper left', bbox_to_anchor=(1, 1))
    plt.title("Greyhole Detection: Watchdog Verdicts")
    plt.axis('off')
    plt.tight_layout()

    if return_fig:
        plt.close(fig)
        return fig

    try:
        plt.savefig(filename)
        print(f"Network visualization saved to {filename}")
    finally:
        plt.close()


def plot_reputation(reports, threshold=1.0, filename="reputation.png", return_fig=False):
    """Score trajectory of every watchdog over simulated time, with the +/- threshold band."""
    fig, ax = plt.subplots(figsize=(10, 6))

    for report in reports:
        if not report.history:
            continue
        times = [t for t, _, _, _ in report.history]
        scores = [score for _, _, score, _ in report.history]
        ax.step(times, scores, where='post', alpha=0.6, label=f"Node {report.node_id}")

    ax.axhline(threshold, color='green', linestyle='--', linewidth=1)
    ax.axhline(-threshold, color='red', linestyle='--', linewidth=1)
    ax.axhspan(-threshold, threshold, color='gray', alpha=0.1)
    ax.set_xlabel('Simulated time (s)')
    ax.set_ylabel('Reputation score')
    ax.set_title('Watchdog Reputation Trajectories')
    if len(reports) <= 12:
        ax.legend(loc='upper left', bbox_to_anchor=(1, 1))
    fig.tight_layout()

    if return_fig:
        plt.close(fig)
        return fig

    try:
        fig.savefig(filename)
        print(f"Reputation chart saved to {filename}")
    finally:
        plt.close(fig)
