import logging

from blackjack import BlackjackRules, SurrenderMode
from blackjack_simulator import BlackjackSimulator, StoppingCriterion, print_simulation_results

def run_blackjack_simulation(hands: int = 1000000, seed: int = 2024):
    """
    Compare a 3:2 table with the same table paying 6:5 on blackjack.

    Args:
        hands: Rounds to simulate per rule set
        seed: Seed for the per-stream random generators
    """
    base_rules = dict(
        number_of_decks=6,
        deck_penetration=0.75,
        dealer_hits_soft_17=False,
        surrender=SurrenderMode.LATE,
        insurance_offered=True,
        starting_chips=1000,
    )
    rule_sets = {
        "6D S17 3:2": BlackjackRules(blackjack_payout="3:2", **base_rules),
        "6D S17 6:5": BlackjackRules(blackjack_payout="6:5", **base_rules),
    }
    criterion = StoppingCriterion(max_rounds=hands, batch_size=20_000)

    print(f"Simulating {hands:,} rounds for each of {len(rule_sets)} rule sets...")
    with BlackjackSimulator() as simulator:
        results = simulator.compare(rule_sets, criterion, seed=seed)

    for name, result in results.items():
        print(f"\n=== {name} ===")
        print_simulation_results(result, criterion.confidence)

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_blackjack_simulation()
