from blackjack import Blackjack, BlackjackRules, GameError, GameResult, RoundResult
from basic_strategy import BasicStrategy
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, fields, replace
from fractions import Fraction
from concurrent.futures import Executor, Future, ProcessPoolExecutor, FIRST_COMPLETED, wait
from statistics import NormalDist
import multiprocessing
import threading
import random
import math
import time
from tqdm import tqdm
import logging

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Running totals for a simulation stream.

    Everything stored is a count or an exact sum, so partial results from
    different workers merge to the same totals in any order or grouping.
    Mean, variance and the house edge are derived on demand as floats.
    """
    rounds_played: int = 0
    rounds_excluded: int = 0
    hands_played: int = 0
    total_wagered: Fraction = Fraction(0)       # initial bets
    additional_wagered: Fraction = Fraction(0)  # doubles, splits, insurance
    total_net: Fraction = Fraction(0)
    sum_squares: Fraction = Fraction(0)
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    blackjacks: int = 0
    surrenders: int = 0
    player_busts: int = 0
    dealer_blackjacks: int = 0
    dealer_busts: int = 0
    doubles: int = 0
    splits: int = 0
    insurances_taken: int = 0

    def record(self, result: RoundResult):
        net = result.total_win_loss
        self.rounds_played += 1
        self.hands_played += len(result.hand_results)
        self.total_wagered += result.initial_bet
        self.additional_wagered += result.additional_wagered
        self.total_net += net
        self.sum_squares += net * net
        self.doubles += result.doubles
        self.splits += result.splits
        if result.insurance_bet:
            self.insurances_taken += 1
        if result.dealer_blackjack:
            self.dealer_blackjacks += 1
        if result.dealer_busted:
            self.dealer_busts += 1
        for outcome in result.hand_results:
            if outcome.busted:
                self.player_busts += 1
            if outcome.result == GameResult.BLACKJACK:
                self.blackjacks += 1
                self.wins += 1
            elif outcome.result == GameResult.WIN:
                self.wins += 1
            elif outcome.result == GameResult.LOSE:
                self.losses += 1
            elif outcome.result == GameResult.PUSH:
                self.pushes += 1
            elif outcome.result == GameResult.SURRENDER:
                self.surrenders += 1

    def merge(self, other: "SimulationResult") -> "SimulationResult":
        return SimulationResult(**{
            f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)
        })

    __add__ = merge

    @property
    def mean(self) -> float:
        """Average net chips per round"""
        return float(self.total_net / self.rounds_played) if self.rounds_played else 0.0

    @property
    def variance(self) -> float:
        """Sample variance of the per-round net result"""
        n = self.rounds_played
        if n < 2:
            return 0.0
        return float((self.sum_squares - self.total_net * self.total_net / n) / (n - 1))

    @property
    def std_deviation(self) -> float:
        return math.sqrt(self.variance)

    @property
    def house_edge(self) -> float:
        """House profit as a fraction of the initial bets"""
        return float(-self.total_net / self.total_wagered) if self.total_wagered else 0.0

    @property
    def house_edge_total_action(self) -> float:
        """House profit as a fraction of everything put on the table"""
        action = self.total_wagered + self.additional_wagered
        return float(-self.total_net / action) if action else 0.0

    @property
    def standard_error(self) -> float:
        n = self.rounds_played
        if n < 2 or not self.total_wagered:
            return math.inf
        mean_bet = float(self.total_wagered) / n
        return self.std_deviation / math.sqrt(n) / mean_bet

    def confidence_interval(self, confidence: float = 0.95) -> Tuple[float, float]:
        z = NormalDist().inv_cdf((1 + confidence) / 2)
        margin = z * self.standard_error
        return self.house_edge - margin, self.house_edge + margin

    def ci_width(self, confidence: float = 0.95) -> float:
        low, high = self.confidence_interval(confidence)
        return high - low


@dataclass(frozen=True)
class StoppingCriterion:
    """When a stream stops: a round budget, a confidence width, or both.

    ``target_ci_width`` is the full width of the house-edge interval, e.g.
    0.002 for +/-0.1%.
    """
    max_rounds: Optional[int] = 1_000_000
    target_ci_width: Optional[float] = None
    confidence: float = 0.95
    batch_size: int = 10_000
    min_rounds: int = 10_000

    def __post_init__(self):
        if self.max_rounds is None and self.target_ci_width is None:
            raise ValueError("A stopping criterion needs max_rounds or target_ci_width")
        if self.max_rounds is not None and self.max_rounds <= 0:
            raise ValueError("max_rounds must be positive")
        if self.target_ci_width is not None and self.target_ci_width <= 0:
            raise ValueError("target_ci_width must be positive")
        if not 0 < self.confidence < 1:
            raise ValueError("confidence must be between 0 and 1")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be positive")

    def is_met(self, result: SimulationResult) -> bool:
        rounds = result.rounds_played + result.rounds_excluded
        if self.max_rounds is not None and rounds >= self.max_rounds:
            return True
        if self.target_ci_width is not None and result.rounds_played >= self.min_rounds:
            return result.ci_width(self.confidence) <= self.target_ci_width
        return False


def simulate_batch(rules: BlackjackRules, num_rounds: int, seed: int, base_bet: float) -> SimulationResult:
    """Play ``num_rounds`` rounds of basic strategy in one worker.

    The worker owns its random generator, shoe and bankroll. A round that
    raises a game error is logged and left out of the totals.
    """
    game = Blackjack(rules, rng=random.Random(seed))
    strategy = BasicStrategy()
    results = SimulationResult()

    for _ in range(num_rounds):
        # Reset bankroll to the starting amount if we run out
        if game.chips < base_bet:
            game.chips = Fraction(rules.starting_chips)
        try:
            outcome = game.play_round(base_bet, strategy)
        except GameError as e:
            logger.warning(f"Excluding round that could not complete: {e}")
            game.abandon_round()
            results.rounds_excluded += 1
            continue
        results.record(outcome)

    return results


class SimulationStream:
    """One rule set being simulated in the background.

    Batches go to the executor and are merged into the running result as they
    finish. Stopping cancels batches that have not started and folds in the
    ones already running, so a round is never cut off halfway.
    """

    def __init__(self, rules: BlackjackRules, criterion: StoppingCriterion, executor: Executor,
                 max_in_flight: int, seed: Optional[int] = None, base_bet: float = 10.0,
                 name: Optional[str] = None):
        self.rules = rules
        self.criterion = criterion
        self.executor = executor
        self.max_in_flight = max(1, max_in_flight)
        self.base_bet = base_bet
        self.name = name or "simulation"
        self.error: Optional[BaseException] = None
        self._seeds = random.Random(seed)
        self._result = SimulationResult()
        self._rounds_submitted = 0
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._done = threading.Event()
        self._thread = threading.Thread(target=self._run, name=f"stream-{self.name}", daemon=True)

    def start(self) -> "SimulationStream":
        logger.info(f"Starting simulation stream '{self.name}'")
        self._thread.start()
        return self

    def _next_batch_size(self) -> int:
        size = self.criterion.batch_size
        if self.criterion.max_rounds is not None:
            size = min(size, self.criterion.max_rounds - self._rounds_submitted)
        return size

    def _submit(self) -> Future:
        size = self._next_batch_size()
        self._rounds_submitted += size
        return self.executor.submit(simulate_batch, self.rules, size, self._seeds.getrandbits(64), self.base_bet)

    def _merge(self, future: Future):
        partial = future.result()
        with self._lock:
            self._result = self._result.merge(partial)

    def _run(self):
        pending = set()
        try:
            while not self._stop_event.is_set():
                while len(pending) < self.max_in_flight and self._next_batch_size() > 0:
                    pending.add(self._submit())
                if not pending:
                    break
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    self._merge(future)
                if self.criterion.is_met(self.poll()):
                    self._stop_event.set()
        except Exception as e:
            logger.exception(f"Simulation stream '{self.name}' failed")
            self.error = e
        finally:
            for future in pending:
                future.cancel()
            for future in pending:
                if future.cancelled():
                    continue
                try:
                    self._merge(future)
                except Exception as e:
                    logger.exception(f"Batch in stream '{self.name}' failed while stopping")
                    self.error = self.error or e
            self._done.set()
            result = self.poll()
            logger.info(f"Simulation stream '{self.name}' finished after {result.rounds_played:,} rounds, "
                        f"house edge {result.house_edge * 100:.3f}%")

    def poll(self) -> SimulationResult:
        """Snapshot of the aggregate so far"""
        with self._lock:
            return replace(self._result)

    def request_stop(self):
        self._stop_event.set()

    def stop(self, timeout: Optional[float] = None) -> SimulationResult:
        """Stop between rounds and return whatever has been accumulated.

        A failed batch does not lose the totals merged before it; the error
        stays on ``self.error`` and is raised by ``wait``.
        """
        self.request_stop()
        self.join(timeout)
        return self.poll()

    def wait(self, timeout: Optional[float] = None) -> SimulationResult:
        self.join(timeout)
        if self.error is not None:
            raise self.error
        return self.poll()

    def join(self, timeout: Optional[float] = None):
        self._done.wait(timeout)

    @property
    def done(self) -> bool:
        return self._done.is_set()


class BlackjackSimulator:
    """Runs simulation streams for one or more rule sets on a shared worker pool"""

    def __init__(self, processes: Optional[int] = None, executor: Optional[Executor] = None,
                 base_bet: float = 10.0):
        if processes is None:
            processes = multiprocessing.cpu_count()
        self.processes = processes
        self.base_bet = base_bet
        self._owns_executor = executor is None
        self.executor = executor or ProcessPoolExecutor(max_workers=processes)
        self.streams: List[SimulationStream] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()

    def start_simulation(self, rules: BlackjackRules, criterion: Optional[StoppingCriterion] = None,
                         seed: Optional[int] = None, name: Optional[str] = None) -> SimulationStream:
        bet = self.base_bet
        if rules.min_bet is not None:
            bet = max(bet, rules.min_bet)
        if rules.max_bet is not None and bet > rules.max_bet:
            raise ValueError(f"Base bet {bet} is above the table maximum {rules.max_bet}")
        if bet > rules.starting_chips:
            raise ValueError(f"Base bet {bet} is above the starting chips {rules.starting_chips}")
        stream = SimulationStream(
            rules, criterion or StoppingCriterion(), self.executor, self.processes,
            seed=seed, base_bet=bet, name=name or f"stream-{len(self.streams) + 1}",
        )
        self.streams.append(stream)
        return stream.start()

    def poll(self, stream: SimulationStream) -> SimulationResult:
        return stream.poll()

    def stop(self, stream: SimulationStream) -> SimulationResult:
        return stream.stop()

    def run_simulation(self, rules: BlackjackRules, num_hands: int = 100000,
                       seed: Optional[int] = None) -> SimulationResult:
        """Run a fixed number of rounds and gather statistics"""
        logger.info(f"Starting simulation of {num_hands:,} hands using {self.processes} workers")
        criterion = StoppingCriterion(max_rounds=num_hands, batch_size=max(1, min(10_000, num_hands // self.processes)))
        results = self.start_simulation(rules, criterion, seed=seed).wait()
        logger.info("Simulation complete")
        return results

    def compare(self, rule_sets: Dict[str, BlackjackRules], criterion: Optional[StoppingCriterion] = None,
                seed: Optional[int] = None, progress: bool = True,
                poll_interval: float = 0.25) -> Dict[str, SimulationResult]:
        """Run every rule set concurrently and return the final results by name"""
        criterion = criterion or StoppingCriterion()
        seeds = random.Random(seed)
        streams = {
            name: self.start_simulation(rules, criterion, seed=seeds.getrandbits(64), name=name)
            for name, rules in rule_sets.items()
        }
        bars = {
            name: tqdm(total=criterion.max_rounds, desc=name, position=i, unit="rounds", disable=not progress)
            for i, name in enumerate(streams)
        }
        try:
            while not all(stream.done for stream in streams.values()):
                for name, stream in streams.items():
                    self._update_bar(bars[name], stream.poll())
                time.sleep(poll_interval)
            results = {name: stream.wait() for name, stream in streams.items()}
            for name, result in results.items():
                self._update_bar(bars[name], result)
        finally:
            for bar in bars.values():
                bar.close()
        return results

    @staticmethod
    def _update_bar(bar: tqdm, result: SimulationResult):
        bar.update(result.rounds_played + result.rounds_excluded - bar.n)
        bar.set_postfix(edge=f"{result.house_edge * 100:.3f}%")

    def shutdown(self):
        for stream in self.streams:
            stream.request_stop()
        for stream in self.streams:
            stream.join()
        if self._owns_executor:
            self.executor.shutdown(wait=True)


def print_simulation_results(results: SimulationResult, confidence: float = 0.95):
    """Print formatted simulation results"""
    hands = results.hands_played or 1
    rounds = results.rounds_played or 1
    low, high = results.confidence_interval(confidence)
    print("\nSimulation Results:")
    print(f"Rounds Played: {results.rounds_played:,}")
    if results.rounds_excluded:
        print(f"Rounds Excluded: {results.rounds_excluded:,}")
    print(f"Hands Played: {results.hands_played:,}")
    print(f"Total Wagered: ${float(results.total_wagered):,.2f} (+${float(results.additional_wagered):,.2f} doubles/splits/insurance)")
    print(f"\nOutcomes:")
    print(f"Wins: {results.wins:,} ({results.wins/hands*100:.2f}%)")
    print(f"Losses: {results.losses:,} ({results.losses/hands*100:.2f}%)")
    print(f"Pushes: {results.pushes:,} ({results.pushes/hands*100:.2f}%)")
    print(f"Blackjacks: {results.blackjacks:,} ({results.blackjacks/hands*100:.2f}%)")
    print(f"Surrenders: {results.surrenders:,} ({results.surrenders/hands*100:.2f}%)")
    print(f"Player Busts: {results.player_busts:,} ({results.player_busts/hands*100:.2f}%)")
    print(f"\nDealer:")
    print(f"Blackjacks: {results.dealer_blackjacks:,} ({results.dealer_blackjacks/rounds*100:.2f}%)")
    print(f"Busts: {results.dealer_busts:,} ({results.dealer_busts/rounds*100:.2f}%)")
    print(f"\nSpecial Plays:")
    print(f"Doubles: {results.doubles:,} ({results.doubles/hands*100:.2f}%)")
    print(f"Splits: {results.splits:,} ({results.splits/hands*100:.2f}%)")
    print(f"\nMoney Statistics:")
    print(f"Net Result: ${float(results.total_net):,.2f}")
    print(f"House Edge: {results.house_edge * 100:.3f}% "
          f"({confidence:.0%} CI {low * 100:.3f}% to {high * 100:.3f}%)")
    print(f"Standard Deviation: ${results.std_deviation:.2f} per round")
