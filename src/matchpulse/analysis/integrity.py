"""
Integrity verification for persisted telemetry.

Re-reads every entity of a match and checks the structural invariants the
generators promise: phases tile the match window, phase-scoped timestamps sit
inside their phase, TTD timestamps are ordered and consistent with ttd_ms, and
combo counts and rates agree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta

from matchpulse.infra.database import DatabaseManager, Match, Phase
from matchpulse.synthesis.combos import combo_win_rate
from matchpulse.synthesis.phases import find_phase

logger = logging.getLogger(__name__)


@dataclass
class MatchIntegrity:
    match_id: int
    match_uid: str
    counts: dict[str, int] = field(default_factory=dict)
    violations: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations


@dataclass
class IntegrityReport:
    matches: list[MatchIntegrity] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(m.ok for m in self.matches)

    @property
    def violation_count(self) -> int:
        return sum(len(m.violations) for m in self.matches)


def check_phase_coverage(match: Match, phases: list[Phase]) -> list[str]:
    """Phases must cover [start, end) exactly, end to end."""
    if not phases:
        return ["match has no phases"]

    problems = []
    if phases[0].start_ts != match.start_ts:
        problems.append(f"first phase starts at {phases[0].start_ts}, match at {match.start_ts}")
    if phases[-1].end_ts != match.end_ts:
        problems.append(f"last phase ends at {phases[-1].end_ts}, match at {match.end_ts}")
    for phase in phases:
        if phase.start_ts >= phase.end_ts:
            problems.append(f"phase {phase.id} is empty or reversed")
    for prev, nxt in zip(phases, phases[1:]):
        if prev.end_ts < nxt.start_ts:
            problems.append(f"gap between phases {prev.id} and {nxt.id}")
        elif prev.end_ts > nxt.start_ts:
            problems.append(f"phases {prev.id} and {nxt.id} overlap")
    return problems


def verify_match(db: DatabaseManager, match: Match) -> MatchIntegrity:
    """Check every invariant of one match."""
    result = MatchIntegrity(match_id=match.id, match_uid=match.match_uid)
    phases = db.get_phases(match.id)
    by_id = {p.id: p for p in phases}
    events = db.get_events(match.id)
    samples = db.get_ttd_samples(match.id)
    turns = db.get_voice_turns(match.id)
    combos = db.get_combos(match.id)
    result.counts = {
        "phases": len(phases),
        "events": len(events),
        "ttd_samples": len(samples),
        "voice_turns": len(turns),
        "combos": len(combos),
    }
    problems = result.violations
    problems.extend(check_phase_coverage(match, phases))

    for ev in events:
        if find_phase(phases, ev.event_ts) is None:
            problems.append(f"event {ev.id} at {ev.event_ts} is outside every phase")

    for s in samples:
        if not s.event_src_ts <= s.decision_ts <= s.action_ts:
            problems.append(f"ttd sample {s.id} timestamps out of order")
        if s.action_ts - s.event_src_ts != timedelta(milliseconds=s.ttd_ms):
            problems.append(f"ttd sample {s.id} ttd_ms does not match its timestamps")
        phase = by_id.get(s.phase_id) if s.phase_id is not None else find_phase(phases, s.event_src_ts)
        if phase is None or not (phase.contains(s.event_src_ts) and phase.contains(s.action_ts)):
            problems.append(f"ttd sample {s.id} is outside its phase")

    for turn in turns:
        phase_id = turn.details.phase_id
        phase = by_id.get(phase_id) if phase_id is not None else find_phase(phases, turn.start_ts)
        if turn.start_ts >= turn.end_ts:
            problems.append(f"voice turn {turn.id} is empty or reversed")
        elif phase is None or not (phase.contains(turn.start_ts) and phase.contains(turn.end_ts)):
            problems.append(f"voice turn {turn.id} is outside its phase")

    for combo in combos:
        if not 0 <= combo.successes <= combo.attempts:
            problems.append(f"combo {combo.id} has {combo.successes}/{combo.attempts}")
            continue
        if combo.attempts > 0 and combo.win_rate != combo_win_rate(combo.successes, combo.attempts):
            problems.append(f"combo {combo.id} win rate disagrees with its counts")
        low, high = combo.confidence_interval_low, combo.confidence_interval_high
        if low is not None and high is not None and not low <= combo.win_rate <= high:
            problems.append(f"combo {combo.id} win rate outside its interval")
        if not 2 <= len(set(combo.members or [])) <= 3:
            problems.append(f"combo {combo.id} needs 2-3 distinct members")

    if problems:
        logger.warning(f"Match {match.match_uid}: {len(problems)} integrity violations")
    return result


def verify_user_matches(db: DatabaseManager, user_id: int, limit: int = 1000) -> IntegrityReport:
    """Verify up to `limit` of a user's matches, newest first."""
    report = IntegrityReport()
    for match in db.get_matches_for_user(user_id, limit=limit):
        report.matches.append(verify_match(db, match))
    logger.info(f"Verified {len(report.matches)} matches: {report.violation_count} violations")
    return report
