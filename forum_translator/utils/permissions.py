"""Who can read which posts."""


def can_see_post(user, post) -> bool:
    """Private messages: participants only. Restricted categories: members of
    one of the category's groups. Admins see everything."""
    if post is None or post.is_deleted:
        return bool(user and user.is_admin and post is not None)
    if user is not None and user.is_admin:
        return True
    
    topic = post.topic
    if topic is None:
        return True
    
    if topic.is_private_message:
        return user is not None and user.id in topic.get_allowed_user_ids()
    
    category = topic.category
    if category is not None and category.read_restricted:
        if user is None:
            return False
        return bool(set(user.get_group_ids()) & set(category.get_secure_group_ids()))
    
    return True
