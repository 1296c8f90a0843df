from flask import Blueprint, jsonify, request, current_app
from vibequiz import get_context
from vibequiz.domain import FINISHED, PLAYING, REVEALED, ROUND_END, Quiz
from vibequiz.errors import NotFound, QuizError, SessionNotFound, ValidationFailure
from vibequiz.services import identity, ledger, roster, scoring, sessions
from vibequiz.services.quizzes import SAMPLE_QUIZ, get_quiz, save_quiz
from vibequiz.services.scheduler import schedule_auto_reveal


games = Blueprint('games', __name__)

# Host actions by URL segment
_ACTIONS = {
    'start': sessions.start_quiz,
    'start-question': sessions.start_question,
    'reveal': sessions.reveal_answer,
    'next': sessions.advance,
    'next-question': sessions.next_question,
    'round-end': sessions.show_round_end,
    'next-round': sessions.next_round,
    'finish': sessions.finish_quiz,
    'reset': sessions.reset,
}


@games.errorhandler(QuizError)
def handle_quiz_error(exc):
    current_app.logger.info(f"[api-error] path={request.path} kind={type(exc).__name__} message={exc.message}")
    return jsonify(exc.to_dict()), exc.status_code


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationFailure('Request body must be a JSON object.')
    return data


def _question_payload(session, quiz):
    question = quiz.question_at(session.current_round, session.current_question)
    if question is None or session.status != PLAYING:
        return None
    payload = question.to_dict()
    # The correct option stays hidden until the host reveals it
    if session.question_phase not in (REVEALED, ROUND_END):
        payload.pop('correct_index')
    return payload


def _state_payload(ctx, code):
    session = sessions.get_session(ctx, code)
    quiz = get_quiz(ctx, session.quiz_id)
    players = roster.list_players(ctx, code)
    answers = ledger.all_answers(ctx, code)
    question = quiz.question_at(session.current_round, session.current_question)
    payload = session.to_dict()
    payload.update({
        'session_code': code,
        'quiz_name': quiz.name,
        'total_rounds': len(quiz.rounds),
        'round_name': quiz.rounds[session.current_round].name if question else None,
        'total_questions': quiz.question_count(session.current_round),
        'question': _question_payload(session, quiz),
        'seconds_left': scoring.seconds_left(session, question, ctx.now()) if question else 0,
        'player_count': len(players),
        'answer_count': ledger.answer_count(answers, session.current_round, session.current_question),
        'allowed_actions': sessions.allowed_actions(session, quiz),
        'leaderboard': [row.to_dict() for row in roster.leaderboard(players)],
    })
    return payload


@games.route('/quizzes', methods=['POST'])
def create_quiz():
    data = _json_body()
    if not data:
        raise ValidationFailure('Quiz content is required.')
    quiz = save_quiz(get_context(), Quiz.from_dict(data))
    return jsonify({'message': 'Quiz saved!', 'quiz_id': quiz.id}), 201


@games.route('/quizzes/<string:quiz_id>', methods=['GET'])
def read_quiz(quiz_id):
    return jsonify(get_quiz(get_context(), quiz_id).to_dict())


@games.route('/sessions/create', methods=['POST'])
def create_session():
    ctx = get_context()
    data = _json_body()
    quiz_id = data.get('quiz_id')
    if not quiz_id:
        quiz_id = save_quiz(ctx, SAMPLE_QUIZ).id
    code = sessions.create_session(ctx, quiz_id)
    return jsonify({
        'message': 'New game created!',
        'session_code': code,
        'quiz_id': quiz_id,
    }), 201


@games.route('/sessions/join', methods=['POST'])
def join_session():
    data = _json_body()
    code = sessions.normalize_code(data.get('session_code'))
    player_id = data.get('player_id') or identity.generate_player_id()
    player = roster.join(get_context(), code, player_id, data.get('name'))
    payload = player.to_dict()
    payload['session_code'] = code
    return jsonify(payload), 201


@games.route('/sessions/<string:session_code>/state', methods=['GET'])
def get_state(session_code):
    ctx = get_context()
    return jsonify(_state_payload(ctx, sessions.normalize_code(session_code)))


@games.route('/sessions/<string:session_code>/<string:action>', methods=['POST'])
def host_action(session_code, action):
    transition = _ACTIONS.get(action)
    if transition is None:
        raise NotFound(f'Unknown action {action!r}.')
    ctx = get_context()
    code = sessions.normalize_code(session_code)
    session = transition(ctx, code)
    if action == 'start-question':
        schedule_auto_reveal(current_app._get_current_object(), ctx, code, session,
                             get_quiz(ctx, session.quiz_id))
    return jsonify(_state_payload(ctx, code))


@games.route('/sessions/<string:session_code>/answers', methods=['POST'])
def submit_answer(session_code):
    data = _json_body()
    result = scoring.submit_answer(
        get_context(),
        session_code,
        data.get('player_id'),
        data.get('answer_index'),
    )
    return jsonify(result.to_dict())


@games.route('/sessions/<string:session_code>/answers', methods=['GET'])
def list_answers(session_code):
    ctx = get_context()
    answers = ledger.all_answers(ctx, session_code)
    round_index = request.args.get('round', type=int)
    question_index = request.args.get('question', type=int)
    player_id = request.args.get('player_id')
    if round_index is not None and question_index is not None:
        by_player = ledger.answers_for_question(answers, round_index, question_index)
        return jsonify({
            'round': round_index,
            'question': question_index,
            'count': len(by_player),
            'distribution': ledger.option_distribution(answers, round_index, question_index),
            'answers': {pid: answer.to_dict() for pid, answer in by_player.items()},
        })
    if player_id:
        entries = ledger.player_history(answers, player_id)
    else:
        entries = sorted(answers.items(), key=lambda e: (e[0].round_index, e[0].question_index, e[0].player_id))
    return jsonify([
        dict(answer.to_dict(), round=key.round_index, question=key.question_index)
        for key, answer in entries
    ])


@games.route('/sessions/<string:session_code>/leaderboard', methods=['GET'])
def get_leaderboard(session_code):
    players = roster.list_players(get_context(), session_code)
    round_index = request.args.get('round', type=int)
    return jsonify([row.to_dict() for row in roster.leaderboard(players, round_index)])


@games.route('/sessions/<string:session_code>/players', methods=['GET'])
def list_players(session_code):
    return jsonify([p.to_dict() for p in roster.list_players(get_context(), session_code)])


@games.route('/sessions/<string:session_code>/players/<string:player_id>/resume', methods=['GET'])
def resume_player(session_code, player_id):
    ctx = get_context()
    code = sessions.normalize_code(session_code)
    session = sessions.find_session(ctx, code)
    if session is None:
        raise SessionNotFound()
    player = roster.find_player(ctx, code, player_id)
    resumable = session.status != FINISHED and player is not None
    return jsonify({
        'resumable': resumable,
        'status': session.status,
        'player': player.to_dict() if player else None,
    })


@games.route('/sessions/<string:session_code>/scores/reconcile', methods=['POST'])
def reconcile_scores(session_code):
    repair = bool(_json_body().get('repair'))
    drifted = scoring.reconcile_totals(get_context(), session_code, repair=repair)
    return jsonify({'drifted': drifted, 'repaired': repair})
