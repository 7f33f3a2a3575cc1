# =============================================================================
# stages/name_guesser.py - Login name guessing stage
# =============================================================================

from typing import List, Dict, Any

from core.base_stage import BaseStage, as_bool
from core.models import ConfigurationRecord, ContactRecord, GuessResult, NameGuess
from core.name_guess import ContactDirectory, guess_contact


class NameGuesser(BaseStage):
    """Guesses each configuration's owner from its login name"""

    snapshot = 'guesses'
    fieldnames = [
        'config_id', 'config_name', 'active', 'last_login_name', 'recorded_contact',
        'guessed_first_name', 'guessed_last_name', 'guessed_full_name',
        'matches_recorded_contact', 'exists_in_directory'
    ]

    def run(self, configurations: List[ConfigurationRecord],
            contacts: List[ContactRecord]) -> List[GuessResult]:
        directory = ContactDirectory(contacts)
        self.logger.info(f"Guessing contacts for {len(configurations)} configurations "
                         f"against {len(directory)} contacts")

        results = []
        for config in configurations:
            guess = guess_contact(config.last_login_name, config.contact_name, directory)
            if not guess.has_guess:
                self.logger.debug(f"No guess for configuration {config.id} "
                                  f"(login name '{config.last_login_name or ''}')")
            results.append(GuessResult(
                config_id=config.id,
                config_name=config.name,
                active=config.active,
                last_login_name=config.last_login_name or '',
                recorded_contact=config.contact_name,
                guess=guess,
            ))

        self.log_summary(results)
        self.save_snapshot(results)
        return results

    def log_summary(self, results: List[GuessResult]) -> None:
        guessed = sum(1 for result in results if result.guess.has_guess)
        in_directory = sum(1 for result in results if result.guess.exists_in_directory)
        matching = sum(1 for result in results if result.guess.matches_recorded_contact)
        selected = sum(1 for result in results if result.selected_for_update)
        self.logger.info(f"Guess summary: {guessed}/{len(results)} guessed, {in_directory} in directory, "
                         f"{matching} already matching, {selected} selected for update")

    def to_row(self, record: GuessResult) -> Dict[str, Any]:
        return {
            'config_id': record.config_id,
            'config_name': record.config_name,
            'active': record.active,
            'last_login_name': record.last_login_name,
            'recorded_contact': record.recorded_contact,
            'guessed_first_name': record.guess.first_name,
            'guessed_last_name': record.guess.last_name,
            'guessed_full_name': record.guess.full_name,
            'matches_recorded_contact': record.guess.matches_recorded_contact,
            'exists_in_directory': record.guess.exists_in_directory,
        }

    def from_row(self, row: Dict[str, Any]) -> GuessResult:
        return GuessResult(
            config_id=int(row['config_id']),
            config_name=row.get('config_name', ''),
            active=as_bool(row.get('active', '')),
            last_login_name=row.get('last_login_name', ''),
            recorded_contact=row.get('recorded_contact', ''),
            guess=NameGuess(
                first_name=row.get('guessed_first_name', ''),
                last_name=row.get('guessed_last_name', ''),
                matches_recorded_contact=as_bool(row.get('matches_recorded_contact', '')),
                exists_in_directory=as_bool(row.get('exists_in_directory', '')),
            ),
        )
