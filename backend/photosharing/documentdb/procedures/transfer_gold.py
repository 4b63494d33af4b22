"""
transferGold: move gold between two users and record the transaction.

Arguments:
    to_user_id        receiver of the gold
    from_user_id      giver of the gold (the system user for platform awards)
    gold_value        amount moved
    transaction_type  GoldTransactionType value stored on the ledger entry
    photo_id          photo the transfer relates to, if any
    system_given      True when the platform issues the gold; the giver is
                      then neither loaded nor debited
    document_version  DocumentVersion of the user documents to touch

Returns the created GOLD_TRANSACTION document. Any failure aborts the run
and the store rolls back every balance change made so far.
"""


async def _get_user(context, user_id, document_version):
    users = await context.query(
        None,
        document_version,
        context.text_field("id") == user_id,
        for_update=True,
    )
    if len(users) != 1:
        raise LookupError(f"Unable to find user {user_id}, aborting.")
    return users[0]


async def run(
    context,
    to_user_id,
    from_user_id,
    gold_value,
    transaction_type,
    photo_id,
    system_given,
    document_version,
):
    to_user = await _get_user(context, to_user_id, document_version)
    to_user["GoldBalance"] = to_user.get("GoldBalance", 0) + gold_value
    changed = [to_user]

    if not system_given:
        if from_user_id == to_user_id:
            from_user = to_user
        else:
            from_user = await _get_user(context, from_user_id, document_version)
            changed.append(from_user)
        from_user["GoldBalance"] = from_user.get("GoldBalance", 0) - gold_value
        from_user["GoldGiven"] = from_user.get("GoldGiven", 0) + gold_value

    for user in changed:
        await context.replace_document(user)

    transaction = {
        "DocumentType": "GOLD_TRANSACTION",
        "DocumentVersion": document_version,
        "id": None,
        "ToUserId": to_user_id,
        "FromUserId": from_user_id,
        "TransactionType": transaction_type,
        "GoldCount": gold_value,
        "PhotoId": photo_id,
        "CreatedDateTime": context.now(),
    }
    return await context.create_document(transaction)
