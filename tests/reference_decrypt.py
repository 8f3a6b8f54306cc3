"""
Reference matcher used by the tests to check the decryption contract.

It needs the authority's bases: B1[0] / B2[0] give the scalars u, v with
e(c1_1, sk_PA_1) = e(g1,g2)^{r1 u v}, which strips down to e(g1,g2)^{r1}.
K1' = e(g1,g2)^{r1 <x_SA', y_PA'>} then equals K1 exactly when the weighted
match is d (same for K2 over B2).
"""

from charm.toolbox.pairinggroup import G1, G2

from wfibe.encoding import encode_attributes, encode_policy
from wfibe.symmetric import decrypt_payload, derive_key


def _side(params, row, c, sk, x, y):
    ctx = params.ctx
    u = ctx.dot(row, x)
    v = ctx.dot(row, y)
    base = ctx.pair(ctx.deserialize(c, G1), ctx.deserialize(sk, G2)) ** ((u * v) ** -1)
    return base ** ctx.dot(x, y)


def recover_keys(params, secret, ct, sk, sender_attrs, sender_policy,
                 receiver_attrs, receiver_policy):
    ctx = params.ctx
    shift = params.Z - ctx.scalar(ct.threshold)
    one = ctx.one()

    x_sa = ctx.scalars(encode_attributes(sender_attrs, params.n)) + [shift]
    x_pb = ctx.scalars(encode_policy(sender_policy, params.m)) + [shift]
    y_pa = ctx.scalars(encode_policy(receiver_policy, params.n)) + [one]
    y_sb = ctx.scalars(encode_attributes(receiver_attrs, params.m)) + [one]

    k1 = _side(params, secret.B1[0], ct.c1_1, sk.sk_pa_1, x_sa, y_pa)
    k2 = _side(params, secret.B2[0], ct.c2_1, sk.sk_sb_1, x_pb, y_sb)
    return k1, k2


def reference_decrypt(params, secret, ct, sk, sender_attrs, sender_policy,
                      receiver_attrs, receiver_policy, digest="sha256"):
    k1, k2 = recover_keys(params, secret, ct, sk, sender_attrs, sender_policy,
                          receiver_attrs, receiver_policy)
    return decrypt_payload(derive_key(params.ctx, k1, k2, digest), ct.payload, ct.cipher)
