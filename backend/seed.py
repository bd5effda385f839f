import asyncio

from courtbook.db import create_all
from courtbook.schemas import Gender, Level, Player, Settings
from courtbook.services.ledger import PLAYERS, SETTINGS, Ledger
from courtbook.services.storage import LedgerStore

F, M = Gender.FEMALE, Gender.MALE

# name, gender, level, visits, shuttles
ROSTER = [
    ("Anna Chen", F, Level.ADVANCED, 15, 19),
    ("Bee", F, Level.INTERMEDIATE, 25, 31),
    ("Dom", M, Level.ADVANCED, 22, 28),
    ("Keng", M, Level.INTERMEDIATE, 18, 23),
    ("Pak", M, Level.BEGINNER, 5, 6),
    ("Mint", F, Level.PRO, 30, 38),
    ("Art", M, Level.PRO, 45, 56),
    ("Cherry", F, Level.INTERMEDIATE, 12, 15),
    ("Golf", M, Level.ADVANCED, 33, 41),
    ("Fah", F, Level.EXPERT, 28, 35),
    ("Ice", M, Level.BEGINNER, 3, 4),
    ("Jane", F, Level.NOVICE, 8, 10),
    ("Lek", M, Level.INTERMEDIATE, 19, 24),
    ("Mew", F, Level.ADVANCED, 21, 26),
    ("Noom", M, Level.EXPERT, 35, 44),
    ("Opal", F, Level.BEGINNER, 2, 3),
    ("Poom", M, Level.PRO, 50, 63),
    ("Queen", F, Level.INTERMEDIATE, 14, 18),
    ("Rit", M, Level.NOVICE, 9, 11),
    ("Som", F, Level.ADVANCED, 24, 30),
    ("Ton", M, Level.INTERMEDIATE, 17, 21),
    ("Un", F, Level.EXPERT, 29, 36),
    ("Vee", M, Level.BEGINNER, 6, 8),
    ("Wan", F, Level.PRO, 40, 50),
    ("X", M, Level.ADVANCED, 26, 33),
    ("Ying", F, Level.INTERMEDIATE, 11, 14),
    ("Zen", M, Level.NOVICE, 7, 9),
    ("Aom", F, Level.ADVANCED, 23, 29),
    ("Boy", M, Level.EXPERT, 31, 39),
    ("Cake", F, Level.BEGINNER, 4, 5),
]


def demo_players() -> list[Player]:
    return [
        Player(
            id=str(index),
            name=name,
            gender=gender,
            level=level,
            visit_count=visits,
            shuttle_count=shuttles,
        )
        for index, (name, gender, level, visits, shuttles) in enumerate(ROSTER, start=1)
    ]


async def main():
    await create_all()
    store = LedgerStore()
    ledger = Ledger(await store.load())
    if ledger.players:
        print(f"Roster already has {len(ledger.players)} players; nothing to seed.")
        return
    ledger.replace_collection(PLAYERS, demo_players())
    ledger.replace_collection(SETTINGS, Settings())
    await store.save([PLAYERS, SETTINGS], ledger)
    print(f"Seeded {len(ledger.players)} players.")


if __name__ == "__main__":
    asyncio.run(main())
