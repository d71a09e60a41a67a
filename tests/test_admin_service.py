"""
tests/test_admin_service.py — Games & Teams Admin Service Tests
================================================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from arena.database.models import AdminLog
from arena.services import admin_service, applicant_service
from conftest import make_game, make_team, make_user

ADMIN = "admin-1"


class TestGames:
    def test_create_game_is_audited(self, db_engine):
        game = admin_service.create_game(
            db_engine, name="Valorant", max_players_per_team=5, actor_id=ADMIN
        )
        assert game.id
        with Session(db_engine) as s:
            log = s.scalars(select(AdminLog)).one()
        assert log.action_type == "CREATE"
        assert log.target_table == "games"
        assert log.target_id == game.id
        assert log.before_snapshot is None
        assert log.after_snapshot["name"] == "Valorant"

    def test_duplicate_game_name(self, db_engine):
        admin_service.create_game(db_engine, name="Valorant", max_players_per_team=5, actor_id=ADMIN)
        with pytest.raises(admin_service.DuplicateName):
            admin_service.create_game(db_engine, name="Valorant", max_players_per_team=3, actor_id=ADMIN)

    @pytest.mark.parametrize("name, max_players", [("", 5), ("Valorant", 0), ("Valorant", -2)])
    def test_invalid_game(self, db_engine, name, max_players):
        with pytest.raises(ValueError):
            admin_service.create_game(
                db_engine, name=name, max_players_per_team=max_players, actor_id=ADMIN
            )

    def test_update_game_records_before_and_after(self, db_engine):
        gid = make_game(db_engine, "Valorant", 5)
        game = admin_service.update_game(
            db_engine, game_id=gid, actor_id=ADMIN, max_players_per_team=6, description="5v5"
        )
        assert game.max_players_per_team == 6
        assert game.description == "5v5"
        with Session(db_engine) as s:
            log = s.scalars(select(AdminLog)).one()
        assert log.before_snapshot["max_players_per_team"] == 5
        assert log.after_snapshot["max_players_per_team"] == 6

    def test_update_ignores_unknown_fields(self, db_engine):
        gid = make_game(db_engine, "Valorant", 5)
        game = admin_service.update_game(db_engine, game_id=gid, actor_id=ADMIN, id="hijack")
        assert game.id == gid

    def test_update_missing_game(self, db_engine):
        assert admin_service.update_game(db_engine, game_id="ghost", actor_id=ADMIN, name="x") is None

    def test_rename_collision(self, db_engine):
        make_game(db_engine, "Valorant")
        gid = make_game(db_engine, "Overwatch")
        with pytest.raises(admin_service.DuplicateName):
            admin_service.update_game(db_engine, game_id=gid, actor_id=ADMIN, name="Valorant")

    def test_set_game_image(self, db_engine):
        gid = make_game(db_engine, "Valorant")
        game = admin_service.set_game_image(
            db_engine, game_id=gid, image_url="/api/uploads/game-images/x.png", actor_id=ADMIN
        )
        assert game.image_url == "/api/uploads/game-images/x.png"


class TestTeams:
    def test_create_team(self, db_engine):
        gid = make_game(db_engine, "Valorant")
        team = admin_service.create_team(db_engine, name="Alpha", game_id=gid, actor_id=ADMIN)
        assert team.game_id == gid

    def test_same_name_allowed_in_other_game(self, db_engine):
        g1 = make_game(db_engine, "Valorant")
        g2 = make_game(db_engine, "Overwatch")
        admin_service.create_team(db_engine, name="Varsity", game_id=g1, actor_id=ADMIN)
        admin_service.create_team(db_engine, name="Varsity", game_id=g2, actor_id=ADMIN)

    def test_duplicate_team_in_game(self, db_engine):
        gid = make_game(db_engine, "Valorant")
        admin_service.create_team(db_engine, name="Alpha", game_id=gid, actor_id=ADMIN)
        with pytest.raises(
            admin_service.DuplicateName,
            match="A team with this name already exists for the selected game.",
        ):
            admin_service.create_team(db_engine, name="Alpha", game_id=gid, actor_id=ADMIN)

    def test_team_needs_existing_game(self, db_engine):
        with pytest.raises(ValueError, match="does not exist"):
            admin_service.create_team(db_engine, name="Alpha", game_id="ghost", actor_id=ADMIN)


class TestReadModels:
    @pytest.fixture
    def club(self, db_engine):
        val = make_game(db_engine, "Valorant", 2)
        make_game(db_engine, "League of Legends", 5)
        alpha = make_team(db_engine, val, "Alpha")
        make_team(db_engine, val, "Beta")
        make_user(db_engine, "alice", team_id=alpha, assigned_role="Duelist")
        make_user(db_engine, "bob", team_id=alpha)
        make_user(db_engine, "free-agent")
        return val

    def test_roster_tree(self, db_engine, club):
        games = admin_service.get_roster(db_engine)
        assert [g["name"] for g in games] == ["League of Legends", "Valorant"]

        valorant = games[1]
        assert valorant["slug"] == "valorant"
        alpha, beta = valorant["teams"]
        assert alpha["name"] == "Alpha"
        assert [u["username"] for u in alpha["users"]] == ["alice", "bob"]
        assert alpha["member_count"] == 2
        assert alpha["is_full"] is True
        assert beta["member_count"] == 0
        assert beta["is_full"] is False
        assert alpha["users"][0]["assigned_role"] == "Duelist"
        assert "password_hash" not in alpha["users"][0]

    def test_nav_list(self, db_engine, club):
        games = admin_service.list_games_for_nav(db_engine)
        assert [(g["name"], g["slug"]) for g in games] == [
            ("League of Legends", "league-of-legends"),
            ("Valorant", "valorant"),
        ]

    def test_game_by_slug(self, db_engine, club):
        game = admin_service.get_game_by_slug(db_engine, "valorant")
        assert game["id"] == club
        assert admin_service.get_game_by_slug(db_engine, "chess") is None

    def test_audit_log_pagination(self, db_engine):
        for i in range(3):
            admin_service.create_game(
                db_engine, name=f"Game {i}", max_players_per_team=5, actor_id=ADMIN
            )
        page = admin_service.list_audit_log(db_engine, page=1, page_size=2)
        assert page["total"] == 3
        assert len(page["entries"]) == 2
        page2 = admin_service.list_audit_log(db_engine, page=2, page_size=2)
        assert len(page2["entries"]) == 1


class TestApplicants:
    FORM = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "discord": "ada#0001",
        "phone": "555-0100",
        "email": "ada@example.edu",
    }

    @pytest.mark.parametrize("over18, expected", [("yes", True), ("no", False), ("YES", False)])
    def test_over18_is_literal_yes(self, db_engine, over18, expected):
        applicant_service.submit_application(db_engine, over18=over18, **self.FORM)
        (row,) = applicant_service.list_applicants(db_engine)
        assert row["is_over_18"] is expected
        assert row["discord_handle"] == "ada#0001"

    def test_message_optional(self, db_engine):
        applicant_service.submit_application(db_engine, over18="yes", **self.FORM)
        assert applicant_service.list_applicants(db_engine)[0]["message"] is None

    def test_missing_field(self, db_engine):
        form = {**self.FORM, "phone": " "}
        with pytest.raises(ValueError, match="phone"):
            applicant_service.submit_application(db_engine, over18="yes", **form)
