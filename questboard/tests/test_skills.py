"""Tests for skills and the skill requirements on quest claims."""

import pytest

from models import Quest, QuestRequiredSkill, UserSkill
from services.errors import ForbiddenError, NotFoundError, ValidationError
from services.quest_service import QuestService
from services.skill_service import SkillService


@pytest.fixture
def carpentry(db_session, admin_user):
    return SkillService.create_skill(admin_user.id, 'Carpentry', 'Building things out of wood')


@pytest.fixture
def cooking(db_session, admin_user):
    return SkillService.create_skill(admin_user.id, 'Cooking')


@pytest.fixture
def skilled_quest(db_session, admin_user, carpentry, cooking):
    """An available quest needing Carpentry 3 and Cooking 1."""
    return QuestService.create_quest(
        admin_user.id, 'Build a spice rack', 40,
        skill_requirements=[
            {'skill_id': carpentry.id, 'min_level': 3},
            {'skill_id': cooking.id, 'min_level': 1},
        ]
    )


class TestSkillService:

    def test_create_skill(self, db_session, carpentry):
        assert carpentry.name == 'Carpentry'
        assert carpentry.is_active is True

    def test_duplicate_skill_name(self, db_session, admin_user, carpentry):
        with pytest.raises(ValidationError, match='already exists'):
            SkillService.create_skill(admin_user.id, 'Carpentry')

    def test_list_hides_inactive(self, db_session, carpentry, cooking):
        SkillService.update_skill(cooking.id, {'is_active': False})

        assert [s.name for s in SkillService.list_skills()] == ['Carpentry']
        assert len(SkillService.list_skills(include_inactive=True)) == 2

    def test_set_user_skill_updates_existing(self, db_session, player_user, carpentry):
        SkillService.set_user_skill(player_user.id, carpentry.id, 2)
        SkillService.set_user_skill(player_user.id, carpentry.id, 4)

        user_skill = UserSkill.query.filter_by(user_id=player_user.id).one()
        assert user_skill.level == 4

    @pytest.mark.parametrize('level', [0, 6, '3', None, True])
    def test_set_user_skill_level_range(self, db_session, player_user, carpentry, level):
        with pytest.raises(ValidationError, match='between 1 and 5'):
            SkillService.set_user_skill(player_user.id, carpentry.id, level)

    def test_set_skill_for_unknown_user(self, db_session, carpentry):
        with pytest.raises(NotFoundError):
            SkillService.set_user_skill(9999, carpentry.id, 2)

    def test_remove_missing_user_skill(self, db_session, player_user, carpentry):
        with pytest.raises(NotFoundError):
            SkillService.remove_user_skill(player_user.id, carpentry.id)

    @pytest.mark.parametrize('requirements', [
        'carpentry',
        [{'skill_id': 1}],
        [{'skill_id': 1, 'min_level': 9}],
        [{'skill_id': 1, 'min_level': 2}, {'skill_id': 1, 'min_level': 3}],
    ])
    def test_parse_requirements_validation(self, db_session, carpentry, requirements):
        with pytest.raises(ValidationError):
            SkillService.parse_requirements(requirements)

    def test_parse_requirements_unknown_skill(self, db_session):
        with pytest.raises(NotFoundError):
            SkillService.parse_requirements([{'skill_id': 9999, 'min_level': 1}])


class TestQuestSkillRequirements:

    def test_create_quest_with_requirements(self, db_session, skilled_quest, carpentry):
        required = {r['skill_name']: r['min_level'] for r in skilled_quest.to_dict()['required_skills']}
        assert required == {'Carpentry': 3, 'Cooking': 1}

    def test_update_replaces_requirements(self, db_session, skilled_quest, carpentry):
        QuestService.update_quest(skilled_quest.id, {
            'skill_requirements': [{'skill_id': carpentry.id, 'min_level': 5}]
        })

        requirements = QuestRequiredSkill.query.filter_by(quest_id=skilled_quest.id).all()
        assert [(r.skill_id, r.min_level) for r in requirements] == [(carpentry.id, 5)]

    def test_update_clears_requirements(self, db_session, skilled_quest):
        QuestService.update_quest(skilled_quest.id, {'skill_requirements': []})

        assert QuestRequiredSkill.query.filter_by(quest_id=skilled_quest.id).count() == 0

    def test_claim_without_skills(self, db_session, skilled_quest, player_user):
        with pytest.raises(ForbiddenError) as exc_info:
            QuestService.claim(skilled_quest.id, player_user.id)

        assert exc_info.value.status_code == 403
        assert sorted(exc_info.value.details['missing_skills']) == ['Carpentry', 'Cooking']
        assert exc_info.value.details['insufficient_skills'] == []
        assert db_session.get(Quest, skilled_quest.id).status == 'AVAILABLE'

    def test_claim_with_low_skill_level(self, db_session, skilled_quest, player_user, carpentry, cooking):
        SkillService.set_user_skill(player_user.id, carpentry.id, 2)
        SkillService.set_user_skill(player_user.id, cooking.id, 1)

        with pytest.raises(ForbiddenError) as exc_info:
            QuestService.claim(skilled_quest.id, player_user.id)

        assert exc_info.value.details['missing_skills'] == []
        assert exc_info.value.details['insufficient_skills'] == [
            {'skill': 'Carpentry', 'required': 3, 'current': 2}
        ]

    def test_claim_with_required_skills(self, db_session, skilled_quest, player_user, carpentry, cooking):
        SkillService.set_user_skill(player_user.id, carpentry.id, 3)
        SkillService.set_user_skill(player_user.id, cooking.id, 5)

        quest = QuestService.claim(skilled_quest.id, player_user.id)

        assert quest.status == 'CLAIMED'
        assert quest.claimed_by == player_user.id

    def test_delete_quest_removes_requirements(self, db_session, skilled_quest):
        QuestService.delete_quest(skilled_quest.id)

        assert QuestRequiredSkill.query.count() == 0


class TestSkillRoutes:

    def test_claim_reports_missing_skills(self, client, skilled_quest, player_headers):
        response = client.post(f'/api/quests/{skilled_quest.id}/claim', headers=player_headers)

        assert response.status_code == 403
        body = response.get_json()
        assert body['message'] == 'You do not meet the skill requirements for this quest'
        assert sorted(body['details']['missing_skills']) == ['Carpentry', 'Cooking']

    def test_create_quest_with_requirements(self, client, editor_headers, carpentry):
        response = client.post('/api/quests', headers=editor_headers, json={
            'title': 'Fix the shed door',
            'bounty': 15,
            'skill_requirements': [{'skill_id': carpentry.id, 'min_level': 2}]
        })

        assert response.status_code == 201
        assert response.get_json()['quest']['required_skills'] == [
            {'skill_id': carpentry.id, 'skill_name': 'Carpentry', 'min_level': 2}
        ]

    def test_skill_management_is_admin_only(self, client, editor_headers, admin_headers):
        assert client.post('/api/skills', headers=editor_headers, json={'name': 'Knitting'}).status_code == 403

        response = client.post('/api/skills', headers=admin_headers, json={'name': 'Knitting'})
        assert response.status_code == 201
        assert response.get_json()['skill']['name'] == 'Knitting'

    def test_set_and_list_user_skills(self, client, admin_headers, player_headers, player_user, carpentry):
        response = client.put(f'/api/skills/users/{player_user.id}/{carpentry.id}',
                              headers=admin_headers, json={'level': 3})
        assert response.status_code == 200

        response = client.get('/api/skills/mine', headers=player_headers)
        assert response.get_json()['skills'][0]['skill_name'] == 'Carpentry'
        assert response.get_json()['skills'][0]['level'] == 3

    def test_set_user_skill_bad_level(self, client, admin_headers, player_user, carpentry):
        response = client.put(f'/api/skills/users/{player_user.id}/{carpentry.id}',
                              headers=admin_headers, json={'level': 7})

        assert response.status_code == 400

    def test_remove_user_skill(self, client, admin_headers, player_user, carpentry):
        SkillService.set_user_skill(player_user.id, carpentry.id, 1)

        url = f'/api/skills/users/{player_user.id}/{carpentry.id}'
        assert client.delete(url, headers=admin_headers).status_code == 200
        assert client.delete(url, headers=admin_headers).status_code == 404
