# simulations/topology_check.py
from env.field import NodeField
from env.topology import compute_neighbors
from routing.mpr import select_mprs
from routing.strategies import make_strategy


def main():
    field = NodeField.initialize(30, seed=42)
    compute_neighbors(field)
    select_mprs(field)
    olsr = make_strategy("OLSR")

    print(f"#Nodes = {len(field)}, sink = {field.sink.pos}")

    for node in field:
        forwarders = olsr.select_forwarders(node, field)
        print(f"\nNode {node.id} (depth={node.depth:.1f}, d_sink={field.distance_to_sink(node):.1f}):")
        print(f"  neighbors : {node.neighbors}")
        print(f"  two-hop   : {node.two_hop_neighbors}")
        print(f"  mprs      : {node.mprs}")
        if not forwarders:
            print("  next hop  : direct / none")
        else:
            print(f"  next hop  : {[n.id for n in forwarders]}")


if __name__ == "__main__":
    main()
