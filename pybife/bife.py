"""
Fixed effects binary choice models with R-style interface and output.

This is the user-facing API, modelled on R's bife().
"""

import numpy as np
import pandas as pd
from typing import Optional, Union, List
from scipy import stats

from ._config import BifeControl
from ._core.fit import BifeResult, fit_bife
from ._core.families import get_link
from ._data import prepare_panel


class BinaryFixedEffects:
    """
    Fit a fixed effects logit or probit model (like R's bife()).

    The individual dummies are never formed: a pseudo-demeaning IRLS
    algorithm estimates the structural parameters and fixed effects, and
    the incidental parameter bias of short panels can be removed
    analytically (Hahn and Newey, 2004).

    Examples
    --------
    >>> import pandas as pd
    >>> from pybife import bife
    >>>
    >>> psid = pd.read_csv('psid.csv')
    >>>
    >>> # Fixed effects logit with analytical bias correction
    >>> model = bife(y='LFP', X=['AGE', 'INCH', 'KID1', 'KID2', 'KID3'],
    ...              id='ID', data=psid)
    >>>
    >>> model.summary()                      # Bias-corrected estimates
    >>> model.summary(corrected=False)       # Uncorrected estimates
    >>> model.coef()                         # Named structural parameters
    >>> model.coef(fixed=True)               # Fixed effects
    >>> model.vcov(corrected=False)          # Covariance matrix
    """

    def __init__(
        self,
        y: Union[str, np.ndarray],
        X: Union[str, List[str], np.ndarray, pd.DataFrame],
        id: Union[str, np.ndarray],
        data: Optional[pd.DataFrame] = None,
        beta_start: Optional[np.ndarray] = None,
        model: str = "logit",
        bias_corr: str = "ana",
        iter_demeaning: int = 100,
        tol_demeaning: float = 1e-5,
        iter_offset: int = 1000,
        tol_offset: float = 1e-5,
        backend: str = 'cpu',
    ):
        """
        Fit fixed effects binary choice model.

        Parameters
        ----------
        y : str or array
            Binary response
            - If string: column name in data
            - If array: values (any two distinct levels)
        X : str, list of str, DataFrame or array
            Structural regressors; no constant and no individual-invariant
            columns (collinear with the fixed effects)
        id : str or array
            Individual identifier
        data : DataFrame, optional
            Dataset containing y, X and id
        beta_start : array, optional
            Starting values for the structural parameters (default zeros)
        model : str
            'logit' or 'probit'
        bias_corr : str
            'ana' (analytical bias correction) or 'no'
        iter_demeaning : int
            Maximum iterations of the demeaning algorithm
        tol_demeaning : float
            Stop when ||b(i) - b(i-1)|| < tol_demeaning
        iter_offset : int
            Maximum iterations of the offset algorithm
        tol_offset : float
            Stop when |a(i) - a(i-1)| / |a(i-1)| < tol_offset per individual
        backend : str
            Computational backend: 'cpu', 'auto', 'gpu'

        Notes
        -----
        Individuals whose response never varies do not contribute to the
        likelihood and are dropped (unlike a dummy-variable glm).
        """
        # Reject bad options before touching the data
        BifeControl(
            model=model,
            bias_corr=bias_corr,
            iter_demeaning=iter_demeaning,
            tol_demeaning=tol_demeaning,
            iter_offset=iter_offset,
            tol_offset=tol_offset,
        )

        self.panel = prepare_panel(y, X, id, data=data)
        self.y_name = self.panel.y_name
        self.X_names = list(self.panel.names)

        self.result: BifeResult = fit_bife(
            self.panel.y,
            self.panel.X,
            self.panel.ids,
            beta_start=beta_start,
            model=model,
            bias_corr=bias_corr,
            iter_demeaning=iter_demeaning,
            tol_demeaning=tol_demeaning,
            iter_offset=iter_offset,
            tol_offset=tol_offset,
            backend=backend,
            sample_info=self.panel.sample_info,
        )

    # Accessors
    # ---------------------------------------------------------------------

    @property
    def par(self):
        return self.result.par

    @property
    def par_corr(self):
        return self.result.par_corr

    @property
    def logl_info(self):
        return self.result.logl_info

    @property
    def model_info(self):
        return self.result.model_info

    @property
    def model(self) -> str:
        return self.result.model_info.model

    @property
    def bias_corr(self) -> str:
        return self.result.model_info.bias_corr

    def _params(self, corrected: bool):
        if corrected and self.result.par_corr is not None:
            return self.result.par_corr
        return self.result.par

    def coef(self, corrected: bool = True, fixed: bool = False) -> pd.Series:
        """
        Estimated parameters.

        Parameters
        ----------
        corrected : bool
            Bias-corrected/-adjusted estimates if available
        fixed : bool
            Return fixed effects instead of structural parameters

        Returns
        -------
        Series
            Named estimates
        """
        par = self._params(corrected)
        if fixed:
            return pd.Series(par.alpha, index=self.result.model_info.used_ids)
        return pd.Series(par.beta, index=self.X_names)

    def vcov(self, corrected: bool = True) -> pd.DataFrame:
        """Covariance matrix of the structural parameters."""
        par = self._params(corrected)
        return pd.DataFrame(par.beta_vcov, index=self.X_names, columns=self.X_names)

    def coef_table(self, corrected: bool = True, fixed: bool = False) -> pd.DataFrame:
        """
        Estimates, standard errors, z values and two-sided p-values.

        Returns
        -------
        DataFrame
            Columns 'Estimate', 'Std. error', 'z value', 'Pr(> |z|)'
        """
        par = self._params(corrected)
        if fixed:
            est, se = par.alpha, par.se_alpha
            index = self.result.model_info.used_ids
        else:
            est, se = par.beta, par.se_beta
            index = self.X_names
        z = est / se
        p = 2.0 * stats.norm.sf(np.abs(z))
        return pd.DataFrame({
            'Estimate': est,
            'Std. error': se,
            'z value': z,
            'Pr(> |z|)': p,
        }, index=index)

    def conf_int(self, alpha: float = 0.05, corrected: bool = True) -> pd.DataFrame:
        """
        Wald confidence intervals for the structural parameters.

        Parameters
        ----------
        alpha : float
            Significance level (default: 0.05 for 95% CI)
        corrected : bool
            Use bias-corrected estimates if available
        """
        par = self._params(corrected)
        z_crit = stats.norm.ppf(1 - alpha / 2)
        return pd.DataFrame({
            'lower': par.beta - z_crit * par.se_beta,
            'upper': par.beta + z_crit * par.se_beta,
        }, index=self.X_names)

    def predict(
        self,
        X: Optional[Union[np.ndarray, pd.DataFrame]] = None,
        id: Optional[np.ndarray] = None,
        type: str = "response",
        corrected: bool = True,
    ) -> np.ndarray:
        """
        Predict for the estimation sample or for new rows of known individuals.

        Parameters
        ----------
        X : DataFrame or array, optional
            New regressor values (default: estimation sample)
        id : array, optional
            Individual of each new row; required with X
        type : str
            'response' (probabilities) or 'link' (linear predictor)
        corrected : bool
            Use bias-corrected/-adjusted estimates if available

        Returns
        -------
        array
            Predicted values

        Raises
        ------
        KeyError
            If an id was not retained in the estimation sample
        """
        if type not in ("response", "link"):
            raise ValueError("type must be 'response' or 'link'")
        par = self._params(corrected)
        info = self.result.model_info

        if X is None:
            X_new, id_new = info.X, info.id
        else:
            if id is None:
                raise ValueError("Must provide id together with X")
            if isinstance(X, pd.DataFrame):
                X_new = X[self.X_names].to_numpy(dtype=np.float64)
            else:
                X_new = np.asarray(X, dtype=np.float64)
                if X_new.ndim == 1:
                    X_new = X_new[:, np.newaxis]
            id_new = np.asarray(id)

        alpha = pd.Series(par.alpha, index=info.used_ids)
        missing = ~pd.Index(id_new).isin(alpha.index)
        if missing.any():
            raise KeyError(
                f"Unknown or dropped individual(s): {list(pd.unique(id_new[missing]))[:5]}"
            )
        eta = X_new @ par.beta + alpha.loc[id_new].to_numpy()

        if type == "link":
            return eta
        return get_link(info.model).cdf(eta)

    # Output
    # ---------------------------------------------------------------------

    def summary(self, corrected: bool = True, fixed: bool = False):
        """
        Print summary of estimation results (like R's summary.bife).
        """
        corrected = corrected and self.result.par_corr is not None
        logl = self.result.logl_info
        info = self.result.model_info
        label = "bias-corrected" if corrected else "uncorrected"

        print()
        print("=" * 80)
        print(f"FIXED EFFECTS {info.model.upper()} MODEL ({label})")
        print("=" * 80)
        print()
        print(f"Dependent variable: {self.y_name}")
        print(f"Number of observations: {logl.nobs} ({info.drop_pc} dropped due to "
              f"perfect classification, {info.drop_NA} due to missing values)")
        print(f"Number of individuals: {len(info.used_ids)} "
              f"({info.drop_pc_groups} perfectly classified)")
        print()

        self._print_table(self.coef_table(corrected=corrected), "Structural parameters:")
        if fixed:
            self._print_table(
                self.coef_table(corrected=corrected, fixed=True), "Fixed effects:"
            )

        par = self._params(corrected)
        loglik = logl.loglik_corr if corrected else logl.loglik
        print(f"Log-likelihood:          {loglik:.4f}")
        print(f"Average fixed effect:    {par.avg_alpha:.4f}")
        print(f"Demeaning algorithm:     {logl.iter_demeaning} iterations, "
              f"converged: {logl.conv_demeaning}")
        if logl.iter_offset is not None:
            print(f"Offset algorithm:        {logl.iter_offset} iterations, "
                  f"converged: {logl.conv_offset}")
        print("=" * 80)
        print()

    @staticmethod
    def _print_table(table: pd.DataFrame, title: str):
        print(title)
        print("-" * 80)
        print(f"{'Variable':<20} {'Estimate':>12} {'Std. error':>12} {'z value':>10} {'Pr(> |z|)':>12}")
        print("-" * 80)

        for name, row in table.iterrows():
            p = row['Pr(> |z|)']
            if p < 0.001:
                sig = ' ***'
            elif p < 0.01:
                sig = ' **'
            elif p < 0.05:
                sig = ' *'
            elif p < 0.1:
                sig = ' .'
            else:
                sig = ''
            p_str = f"{p:.4f}" if p >= 0.0001 else "<.0001"

            print(f"{str(name):<20} {row['Estimate']:>12.4f} {row['Std. error']:>12.4f} "
                  f"{row['z value']:>10.3f} {p_str:>12}{sig}")

        print("-" * 80)
        print("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        print()

    def __repr__(self):
        beta = self.coef()
        return (f"BinaryFixedEffects(model={self.model!r}, bias_corr={self.bias_corr!r}, "
                f"n={len(self.result.model_info.y)}, "
                f"individuals={len(self.result.model_info.used_ids)}, "
                f"beta={np.round(beta.to_numpy(), 4).tolist()})")


def bife(y, X, id, data=None, **kwargs):
    """
    Fit fixed effects binary choice model (convenience function).

    Parameters
    ----------
    y : str or array
        Binary response
    X : str, list of str, DataFrame or array
        Structural regressors
    id : str or array
        Individual identifier
    data : DataFrame, optional
        Dataset
    **kwargs
        Additional arguments passed to BinaryFixedEffects
        (beta_start, model, bias_corr, iter_demeaning, tol_demeaning,
        iter_offset, tol_offset, backend)

    Returns
    -------
    BinaryFixedEffects
        Fitted model object

    Examples
    --------
    >>> # Without bias correction
    >>> mod_no = bife(y='LFP', X=['AGE', 'KID1'], id='ID', data=psid,
    ...               bias_corr='no')
    >>>
    >>> # Probit with analytical bias correction
    >>> mod_ana = bife(y='LFP', X=['AGE', 'KID1'], id='ID', data=psid,
    ...                model='probit')
    >>> mod_ana.summary(fixed=True)
    """
    return BinaryFixedEffects(y=y, X=X, id=id, data=data, **kwargs)
