from bracket_league.models.participant_model import Participant

ADMIN_WALLET = "0xADMIN"


def make_participants(count):
    return [
        Participant(id=f"p{i}", wallet_address=f"0xWALLET{i}", display_name=f"Player {i}")
        for i in range(1, count + 1)
    ]
