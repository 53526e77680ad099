"""Console UI for lingua application."""

from core.config import ANSWER_QUALITIES, RARITY_POINTS
from cli.api_client import LinguaAPIClient


class ConsoleUI:
    """Console user interface for lingua application."""

    def __init__(self, client: LinguaAPIClient):
        self.client = client

    def print_translation(self, result: dict):
        """Print a translation result."""
        print('-' * 40)
        print(f"{result['source_lang']} -> {result['target_lang']}")
        print(f"Original: {result['original']}")
        print(f"Translation: {result['translated_text']}")
        if result['phonetic']:
            print(f"Pronunciation: {result['phonetic']}")
        print(f"Translation time: {result['translate_ms']}ms")
        print('-' * 40)

        if result['daily_goal_reached']:
            print("\n*** Daily goal reached! ***\n")
        self.print_unlocked(result['newly_unlocked'])

    def print_unlocked(self, achievements: list[dict]):
        for achievement in achievements:
            points = RARITY_POINTS[achievement['rarity']]
            print(f"\n*** ACHIEVEMENT UNLOCKED: {achievement['title']} "
                  f"({achievement['rarity']}, +{points} points) ***")
            print(f"    {achievement['description']}\n")

    def print_status(self, status: dict):
        """Print detailed status."""
        print('\n' + '=' * 50)
        print('STATUS SUMMARY')
        print('=' * 50)
        print(f"\n{status['greeting']}")
        print(status['welcome_message'])
        print(f"\nLevel: {status['learning_level']} ({status['adaptive_ui_mode']} mode)")
        print(f"Total translations: {status['total_translations']}")
        print(f"Today's goal: {status['today_progress']:.0f}% complete")
        print(f"Day streak: {status['consecutive_days']}")
        print(f"\nPhrases due for review: {status['due_count']}")
        print(f"Review accuracy: {status['accuracy']}%")
        print(f"\nAchievements: {status['unlocked_count']}/{status['total_count']} "
              f"({status['total_points']} points)")
        print(f"\n{status['milestone_message']}")
        print('\n' + '=' * 50 + '\n')

    def print_achievements(self, data: dict):
        """Print the achievement catalog by category."""
        print('\n' + '=' * 50)
        print(f"ACHIEVEMENTS {data['unlocked_count']}/{data['total_count']} - {data['total_points']} points")
        print('=' * 50)
        for category, achievements in data['categories'].items():
            print(f'\n{category.upper()}')
            for a in achievements:
                mark = '[x]' if a['unlocked'] else '[ ]'
                progress = min(a['progress'], a['requirement'])
                print(f"  {mark} {a['title']:<22} {progress}/{a['requirement']}  {a['rarity']}")
        print('\n' + '=' * 50 + '\n')

    def print_tips(self, personalization: dict):
        """Print tips and recommendations, marking tips as shown."""
        tips = personalization['tips']
        recommendations = personalization['recommendations']
        if not tips and not recommendations:
            print('No tips right now. Keep translating!')
            return
        for tip in tips:
            print(f"\nTip: {tip['title']}")
            print(f"  {tip['message']}")
            try:
                self.client.mark_tip_shown(tip['id'])
            except Exception as e:
                print(f"Error marking tip: {e}")
        for rec in recommendations:
            print(f"\nSuggestion: {rec['title']}")
            print(f"  {rec['description']}")

    def practice(self):
        """Review due phrases until none are left or the user stops."""
        try:
            data = self.client.get_due_items()
        except Exception as e:
            print(f"Error getting due items: {e}")
            return

        if data['total'] == 0:
            print('Nothing to review right now. Translate some phrases first!')
            return

        buttons = ', '.join(f'{key}={label}' for key, (label, _) in ANSWER_QUALITIES.items())
        print(f"\n{data['total']} phrases due. Press Enter to reveal, then rate: {buttons}, q=stop")
        for item in data['items']:
            print(f"\n>>> {item['original']}  ({item['mastery']})")
            if input('(reveal) ').strip().lower() == 'q':
                return
            print(f"    {item['translated']}")
            if item['phonetic']:
                print(f"    [{item['phonetic']}]")

            choice = ''
            while choice not in ANSWER_QUALITIES:
                choice = input('==> ').strip().lower()
                if choice == 'q':
                    return
            _, quality = ANSWER_QUALITIES[choice]

            try:
                result = self.client.submit_answer(item['id'], quality)
            except Exception as e:
                print(f"Error submitting answer: {e}")
                continue
            if result['updated']:
                next_in = result['item']['interval']
                print(f"Next review in {next_in} day{'s' if next_in != 1 else ''} "
                      f"| streak {result['current_streak']} | accuracy {result['accuracy']}%")
            self.print_unlocked(result['newly_unlocked'])
        print('\nAll caught up!')

    def run(self):
        """Run the main application loop."""
        # Check server connection
        try:
            health = self.client.health_check()
            print(f"Connected to lingua server ({health['service']})")
        except Exception as e:
            print(f"Error: Cannot connect to server at {self.client.base_url}")
            print("Make sure the server is running: python run_server.py")
            return

        session = self.client.begin_session()
        print(session['greeting'])
        status = self.client.get_status()
        print(f"Restored: {status['total_translations']} translations, {status['due_count']} due for review")

        print('\nType a phrase to translate it.')
        print('Commands: "practice", "swap", "status", "achievements", "tips", "exit"\n')

        while True:
            user_input = input('==> ').strip()
            command = user_input.lower()

            if command == 'exit':
                self.client.end_session()
                print('Goodbye!')
                return

            elif command == 'practice':
                self.client.track_feature('practice')
                self.practice()

            elif command == 'swap':
                try:
                    langs = self.client.swap_languages()
                    print(f"Now translating {langs['source_language']} -> {langs['target_language']}")
                except Exception as e:
                    print(f"Error swapping languages: {e}")

            elif command == 'status':
                try:
                    self.print_status(self.client.get_status())
                except Exception as e:
                    print(f"Error getting status: {e}")

            elif command == 'achievements':
                try:
                    self.print_achievements(self.client.get_achievements())
                except Exception as e:
                    print(f"Error getting achievements: {e}")

            elif command == 'tips':
                try:
                    self.print_tips(self.client.get_personalization())
                except Exception as e:
                    print(f"Error getting tips: {e}")

            elif user_input:
                print('Translating...')
                try:
                    self.print_translation(self.client.translate(user_input))
                except Exception as e:
                    print(f"Error translating: {e}")
